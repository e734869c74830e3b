import pathlib  # locate repo root
import random  # deterministic PRNG for test cases
import sys  # adjust import path for local modules
import unittest  # unit test framework

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))  # allow importing local modules

from field import Fr  # BN254 Fr field elements
from polynomials import DensePolynomial, DimensionMismatch, UniPoly  # tables + round message type
from sumchecks import SumcheckInconsistent, SumcheckInstanceProof  # prover/verifier + error type
from transcript import ProofTranscript  # transcript for challenge sampling
from wire import Reader, encode  # proof bytes


def _product_instance(rng, num_vars, k):  # k random tables and Σ_x ∏ p_i(x).
    polys = [DensePolynomial([Fr.random(rng) for _ in range(1 << num_vars)]) for _ in range(k)]
    claim = Fr.zero()
    for i in range(1 << num_vars):
        term = Fr.one()
        for p in polys:
            term *= p[i]
        claim += term
    return polys, claim


def _prod(*vals):
    out = Fr.one()
    for v in vals:
        out *= v
    return out


class SumcheckTests(unittest.TestCase):  # Tests for the generic sum-check prover/verifier.
    def test_prove_verify_product(self):  # Completeness for degree 1, 2 and 3 products.
        rng = random.Random(0)
        for k in (1, 2, 3):
            polys, claim = _product_instance(rng, 4, k)
            proof, r, finals = SumcheckInstanceProof.prove(4, polys, _prod, k, ProofTranscript(b"sc test"))
            e, r_v = proof.verify(claim, 4, k, ProofTranscript(b"sc test"))
            self.assertEqual(r, r_v)
            self.assertEqual(e, _prod(*finals))
            for p, f in zip(polys, finals):
                self.assertEqual(p.evaluate(r), f)  # inputs are not mutated

    def test_round_consistency(self):  # g_i(0) + g_i(1) equals the previous round's claim.
        rng = random.Random(1)
        polys, claim = _product_instance(rng, 5, 3)
        proof, r, _ = SumcheckInstanceProof.prove(5, polys, _prod, 3, ProofTranscript(b"sc test"))
        e = claim
        for poly, r_i in zip(proof.polys, r):
            self.assertEqual(poly.eval_at_zero() + poly.eval_at_one(), e)
            self.assertLessEqual(poly.degree(), 3)
            e = poly.evaluate(r_i)

    def test_wrong_claim_rejected(self):  # Initial claim off by one.
        rng = random.Random(2)
        polys, claim = _product_instance(rng, 3, 2)
        proof, _, _ = SumcheckInstanceProof.prove(3, polys, _prod, 2, ProofTranscript(b"sc test"))
        with self.assertRaises(SumcheckInconsistent):
            proof.verify(claim + 1, 3, 2, ProofTranscript(b"sc test"))

    def test_tampered_round_rejected(self):  # Changed round message.
        rng = random.Random(3)
        polys, claim = _product_instance(rng, 3, 2)
        proof, _, _ = SumcheckInstanceProof.prove(3, polys, _prod, 2, ProofTranscript(b"sc test"))
        coeffs = list(proof.polys[1].coeffs)
        coeffs[0] += 1
        tampered = SumcheckInstanceProof(proof.polys[:1] + [UniPoly(coeffs)] + proof.polys[2:])
        with self.assertRaises(SumcheckInconsistent):
            tampered.verify(claim, 3, 2, ProofTranscript(b"sc test"))

    def test_transcript_divergence_changes_challenges(self):  # Different transcript, different point.
        rng = random.Random(4)
        polys, claim = _product_instance(rng, 3, 2)
        proof, r, _ = SumcheckInstanceProof.prove(3, polys, _prod, 2, ProofTranscript(b"sc test"))
        _, r_other = proof.verify(claim, 3, 2, ProofTranscript(b"sc other"))
        self.assertNotEqual(r, r_other)

    def test_degree_bound_exceeded(self):  # Enforces degree bound check.
        proof = SumcheckInstanceProof([UniPoly([Fr(1), Fr(2), Fr(3), Fr(4)])])
        with self.assertRaises(SumcheckInconsistent):
            proof.verify(Fr(0), num_rounds=1, degree_bound=2, transcript=ProofTranscript(b"sc test"))

    def test_round_count_mismatch(self):  # Too few round messages.
        proof = SumcheckInstanceProof([UniPoly([Fr(0), Fr(0)])])
        with self.assertRaises(SumcheckInconsistent):
            proof.verify(Fr(0), num_rounds=2, degree_bound=2, transcript=ProofTranscript(b"sc test"))

    def test_prover_shape_errors(self):  # Tables of different sizes.
        a = DensePolynomial([Fr(1)] * 4)
        b = DensePolynomial([Fr(1)] * 8)
        with self.assertRaises(DimensionMismatch):
            SumcheckInstanceProof.prove(2, [a, b], _prod, 2, ProofTranscript(b"sc test"))

    def test_serialization_roundtrip(self):  # Proof bytes decode to an equal proof.
        rng = random.Random(5)
        polys, _ = _product_instance(rng, 3, 3)
        proof, _, _ = SumcheckInstanceProof.prove(3, polys, _prod, 3, ProofTranscript(b"sc test"))
        r = Reader(encode(proof))
        self.assertEqual(SumcheckInstanceProof.read(r), proof)
        r.finish()


if __name__ == "__main__":
    unittest.main()
