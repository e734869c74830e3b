import pathlib  # locate repo root
import random  # deterministic PRNG for test cases
import sys  # adjust import path for local modules
import unittest  # unit test framework

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))  # allow importing local modules

from field import Fr  # BN254 Fr field elements
from polynomials import DensePolynomial, DimensionMismatch, EqPolynomial  # multilinear layer
from r1cs import R1CSBuilder, R1CSShape, RelaxedR1CSWitness, parse_lc, produce_synthetic_r1cs  # constraint systems


def multiplication_shape():  # z1 * z2 = z3 over z = (1, z1, z2, z3), all witness.
    return R1CSShape(1, 3, 0, [(0, 1, 1)], [(0, 2, 1)], [(0, 3, 1)])


def cubic_builder():  # x^3 + x + 5 == out
    bld = R1CSBuilder().public("out").witness("x", "sym1", "y", "sym2")
    bld.constrain("x", "x", "sym1")
    bld.constrain("sym1", "x", "y")
    bld.constrain("y + x", "1", "sym2")
    bld.constrain("sym2 + 5", "1", "out")
    return bld


class R1CSTests(unittest.TestCase):  # Tests for shapes, padding, relaxed satisfaction and the builder.
    def test_multiplication_example(self):  # z1 * z2 = z3 with (3, 4, 12) and (3, 4, 13).
        shape = multiplication_shape()
        self.assertTrue(shape.is_sat([], [Fr(3), Fr(4), Fr(12)]))
        self.assertFalse(shape.is_sat([], [Fr(3), Fr(4), Fr(13)]))

    def test_padded_layout(self):  # Physical column layout and padded sizes.
        shape = R1CSShape(3, 5, 2, [], [], [])
        self.assertEqual(shape.num_cons_padded, 4)
        self.assertEqual(shape.num_vars_padded, 8)
        self.assertEqual(shape.num_cols, 16)
        self.assertEqual((shape.num_rounds_x, shape.num_rounds_y, shape.num_witness_vars), (2, 4, 3))
        z = shape.z_vector(Fr(1), [Fr(7), Fr(8)], shape.pad_witness([Fr(i) for i in range(1, 6)]))
        self.assertEqual(z[:3], [Fr(1), Fr(7), Fr(8)])
        self.assertEqual(z[3:8], [Fr.zero()] * 5)
        self.assertEqual(z[8:13], [Fr(i) for i in range(1, 6)])
        wide_io = R1CSShape(1, 1, 6, [], [], [])
        self.assertEqual(wide_io.num_vars_padded, 8)

    def test_entry_validation(self):  # Out-of-range rows, columns and witness lengths.
        with self.assertRaises(DimensionMismatch):
            R1CSShape(1, 3, 0, [(1, 1, 1)], [], [])
        with self.assertRaises(DimensionMismatch):
            R1CSShape(1, 3, 0, [(0, 4, 1)], [], [])
        with self.assertRaises(DimensionMismatch):
            multiplication_shape().pad_witness([Fr(1)])
        with self.assertRaises(DimensionMismatch):
            multiplication_shape().check_io([Fr(1)])

    def test_duplicate_entries_merge(self):  # Duplicates add up and zeros are dropped.
        a = R1CSShape(1, 2, 0, [(0, 1, 2), (0, 1, 3)], [(0, 0, 1)], [(0, 2, 5), (0, 2, -5)])
        self.assertEqual(a.A, [(0, a.num_vars_padded, Fr(5))])
        self.assertEqual(a.C, [])

    def test_z_mle_splits_into_public_and_witness(self):  # z~(ry) from the public and witness halves.
        rng = random.Random(0)
        shape, io, w = produce_synthetic_r1cs(4, 6, 2, rng)
        z = shape.z_vector(Fr.one(), io, shape.pad_witness(w))
        ry = [Fr.random(rng) for _ in range(shape.num_rounds_y)]
        w_eval = DensePolynomial(shape.pad_witness(w)).evaluate(ry[1:])
        pub_eval = shape.public_poly(Fr.one(), io).evaluate(ry[1:])
        self.assertEqual(DensePolynomial(z).evaluate(ry), (Fr.one() - ry[0]) * pub_eval + ry[0] * w_eval)

    def test_synthetic_instance_is_satisfied(self):  # Generator output satisfies its shape.
        rng = random.Random(1)
        for num_cons, num_vars, num_io in [(1, 1, 0), (5, 3, 2), (8, 8, 3)]:
            shape, io, w = produce_synthetic_r1cs(num_cons, num_vars, num_io, rng)
            self.assertTrue(shape.is_sat(io, w))
            self.assertEqual((len(io), len(w)), (num_io, num_vars))

    def test_sparse_evaluations_match_dense_tables(self):  # Sparse matrix evaluations equal dense MLEs.
        rng = random.Random(2)
        shape, _, _ = produce_synthetic_r1cs(5, 6, 1, rng)
        rx = [Fr.random(rng) for _ in range(shape.num_rounds_x)]
        ry = [Fr.random(rng) for _ in range(shape.num_rounds_y)]
        dense = shape.dense_matrix_polys()
        evals = shape.evaluate(rx, ry)
        for poly, value in zip(dense, evals):
            self.assertEqual(poly.evaluate(rx + ry), value)
        tables = shape.compute_eval_table_sparse(EqPolynomial(rx).evals())
        eq_ry = EqPolynomial(ry).evals()
        for table, value in zip(tables, evals):
            acc = Fr.zero()
            for a, b in zip(table, eq_ry):
                acc += a * b
            self.assertEqual(acc, value)

    def test_relaxed_satisfaction(self):  # (Az)∘(Bz) = u·(Cz) + E.
        shape = multiplication_shape()
        # (3·4) = u·z3 + E with u = 2, z3 = 5 -> E = 2
        self.assertTrue(shape.is_sat_relaxed(Fr(2), [], [Fr(3), Fr(4), Fr(5)], [Fr(2)]))
        self.assertFalse(shape.is_sat_relaxed(Fr(2), [], [Fr(3), Fr(4), Fr(5)], [Fr(1)]))
        trivial = RelaxedR1CSWitness.from_r1cs_witness(shape, [Fr(3), Fr(4), Fr(12)])
        self.assertTrue(shape.is_sat_relaxed(Fr(1), [], trivial.W, trivial.E))
        with self.assertRaises(DimensionMismatch):
            shape.pad_error([Fr(0), Fr(1)])

    def test_digest_depends_only_on_padded_instance(self):  # Padding-equivalent shapes share a digest.
        a = R1CSShape(3, 5, 1, [(0, 2, 1)], [(1, 3, 1)], [(2, 4, 1)])
        b = R1CSShape(4, 6, 1, [(0, 2, 1)], [(1, 3, 1)], [(2, 4, 1)])
        c = R1CSShape(4, 6, 1, [(0, 2, 1)], [(1, 3, 1)], [(2, 4, 2)])
        self.assertEqual(a.digest(), b.digest())
        self.assertNotEqual(b.digest(), c.digest())

    def test_parse_lc(self):  # Linear-combination expressions.
        cols = {"x": 1, "y": 2}
        lc = parse_lc("x + 2*y - 3", cols)
        self.assertEqual(lc.terms, [(1, 1), (2, 2)])
        self.assertEqual(lc.const, -3)
        self.assertEqual(lc.entries(4), [(4, 1, 1), (4, 2, 2), (4, 0, -3)])
        with self.assertRaises(KeyError):
            parse_lc("z", cols)
        with self.assertRaises(ValueError):
            parse_lc("x+", cols)

    def test_builder_cubic(self):  # x^3 + x + 5 == out via named variables.
        bld = cubic_builder()
        shape = bld.build()
        self.assertEqual((shape.num_cons, shape.num_vars, shape.num_io), (4, 4, 1))
        io, w = bld.assign({"out": 35, "x": 3, "sym1": 9, "y": 27, "sym2": 30})
        self.assertTrue(shape.is_sat(io, w))
        io, w = bld.assign({"out": 36, "x": 3, "sym1": 9, "y": 27, "sym2": 30})
        self.assertFalse(shape.is_sat(io, w))
        with self.assertRaises(KeyError):
            bld.assign({"out": 35})
        with self.assertRaises(ValueError):
            R1CSBuilder().witness("a").witness("a")


if __name__ == "__main__":
    unittest.main()
