import pathlib  # locate repo root
import random  # deterministic PRNG for test cases
import sys  # adjust import path for local modules
import unittest  # unit test framework

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))  # allow `import field`, `import polynomials`

from field import Fr  # BN254 Fr field elements
from polynomials import (
    DensePolynomial,  # evaluation-table multilinear polynomial
    DimensionMismatch,  # shape error
    EqPolynomial,  # equality polynomial utilities
    SparsePolynomial,  # sparse multilinear polynomial
    UniPoly,  # sum-check round message
    log2_pow2,
    next_pow2,
)  # local polynomial module


def _bits(i, n):  # Big-endian bit decomposition of i as field elements.
    return [Fr((i >> (n - 1 - j)) & 1) for j in range(n)]


class PolynomialTests(unittest.TestCase):  # Tests for the multilinear/univariate layer.
    def test_unipoly_from_evals_interpolates(self):  # from_evals passes through (i, e_i) and recovers coefficients.
        rng = random.Random(0)
        for deg in range(0, 5):
            coeffs = [Fr.random(rng) for _ in range(deg + 1)]
            f = UniPoly(coeffs)
            g = UniPoly.from_evals([f.evaluate(i) for i in range(deg + 1)])
            self.assertEqual(g.coeffs, f.coeffs)
            self.assertEqual(g.degree(), deg)
            self.assertEqual(g.eval_at_zero() + g.eval_at_one(), f.evaluate(0) + f.evaluate(1))

    def test_eq_evals_match_mle(self):  # Table entries equal eq(r, bits(i)).
        rng = random.Random(1)
        r = [Fr.random(rng) for _ in range(4)]
        evals = EqPolynomial(r).evals()
        self.assertEqual(len(evals), 16)
        for i, e in enumerate(evals):
            self.assertEqual(e, EqPolynomial.mle(r, _bits(i, 4)))
        total = Fr.zero()
        for e in evals:
            total += e
        self.assertEqual(total, Fr.one())

    def test_eq_factored_evals_tensor(self):  # eq(r, ·) = L ⊗ R.
        rng = random.Random(2)
        for ell in range(0, 6):
            r = [Fr.random(rng) for _ in range(ell)]
            L, R = EqPolynomial(r).compute_factored_evals()
            full = EqPolynomial(r).evals()
            self.assertEqual(len(L) * len(R), len(full))
            for i, a in enumerate(L):
                for j, b in enumerate(R):
                    self.assertEqual(a * b, full[i * len(R) + j])

    def test_dense_evaluate_at_boolean_points(self):  # MLE agrees with the table on the hypercube.
        rng = random.Random(3)
        evals = [Fr.random(rng) for _ in range(8)]
        poly = DensePolynomial(evals)
        for i in range(8):
            self.assertEqual(poly.evaluate(_bits(i, 3)), evals[i])

    def test_bind_matches_evaluate(self):  # Binding the top variable then evaluating == evaluating directly.
        rng = random.Random(4)
        poly = DensePolynomial([Fr.random(rng) for _ in range(16)])
        r = [Fr.random(rng) for _ in range(4)]
        bound = poly.bind(r[0])
        self.assertEqual(bound.num_vars, 3)
        self.assertEqual(len(poly), 16)
        self.assertEqual(bound.evaluate(r[1:]), poly.evaluate(r))
        p = poly.clone()
        for x in r:
            p.bound_poly_var_top(x)
        self.assertEqual(p.num_vars, 0)
        self.assertEqual(p[0], poly.evaluate(r))
        self.assertEqual(len(poly), 16)

    def test_dimension_mismatch(self):  # Shape errors raise DimensionMismatch.
        poly = DensePolynomial([Fr(1), Fr(2)])
        with self.assertRaises(DimensionMismatch):
            poly.evaluate([Fr(0), Fr(1)])
        with self.assertRaises(DimensionMismatch):
            DensePolynomial([Fr(1), Fr(2), Fr(3)])
        with self.assertRaises(DimensionMismatch):
            DensePolynomial([Fr(1)]).bind(Fr(2))

    def test_linear_combination(self):  # Combination evaluates to the combined evaluations.
        rng = random.Random(5)
        a = DensePolynomial([Fr.random(rng) for _ in range(8)])
        b = DensePolynomial([Fr.random(rng) for _ in range(8)])
        lo = DensePolynomial(a.evals[:4])
        r = [Fr.random(rng) for _ in range(3)]
        combo = DensePolynomial.linear_combination([a, b], [Fr(3), Fr(5)])
        self.assertEqual(combo.evaluate(r), 3 * a.evaluate(r) + 5 * b.evaluate(r))
        with self.assertRaises(DimensionMismatch):
            DensePolynomial.linear_combination([a, lo], [Fr(1), Fr(1)])

    def test_sparse_matches_dense(self):  # Sparse evaluation equals the dense table.
        rng = random.Random(6)
        entries = [(1, Fr(7)), (5, Fr(11)), (6, Fr.random(rng))]
        dense = [Fr.zero()] * 8
        for i, v in entries:
            dense[i] = v
        r = [Fr.random(rng) for _ in range(3)]
        self.assertEqual(SparsePolynomial(3, entries).evaluate(r), DensePolynomial(dense).evaluate(r))
        with self.assertRaises(DimensionMismatch):
            SparsePolynomial(2, [(4, Fr(1))])

    def test_pow2_helpers(self):  # log2_pow2 and next_pow2.
        self.assertEqual(log2_pow2(1), 0)
        self.assertEqual(log2_pow2(64), 6)
        with self.assertRaises(DimensionMismatch):
            log2_pow2(6)
        self.assertEqual([next_pow2(n) for n in (0, 1, 2, 3, 5, 8, 9)], [1, 1, 2, 4, 8, 8, 16])


if __name__ == "__main__":
    unittest.main()
