"""Two-phase Spartan argument for (relaxed) R1CS.

Phase 1 (outer sum-check, ``log m`` rounds, degree 3) proves

    0 = Σ_x eq(τ, x) · (Az~(x) · Bz~(x) - u · Cz~(x) - E~(x))

and leaves the prover's claims ``Az~(rx), Bz~(rx), Cz~(rx)``. Phase 2 (inner
sum-check, ``log n`` rounds, degree 2) batches the three claims with random
``r_A, r_B, r_C`` into

    Σ_y (r_A·A~ + r_B·B~ + r_C·C~)(rx, y) · z~(y),

which ends at a single point ``ry``. The verifier gets ``z~(ry)`` from the public
half directly and from an opening of the committed witness at ``ry[1:]``; the
matrix evaluations at ``(rx, ry)`` are supplied by the caller (read from the
matrices for the NIZK, from a computation commitment for the SNARKs).
"""

import logging  # phase-level diagnostics
from dataclasses import dataclass  # proof container

from field import Fr  # BN254 scalar field
from polynomials import DensePolynomial, EqPolynomial  # multilinear tables
from r1cs import public_input_poly  # public half of z
from sumchecks import SumcheckInconsistent, SumcheckInstanceProof  # the sum-check engine
from wire import SerializationError  # malformed relaxed flag

LOGGER = logging.getLogger(__name__)

OUTER_DEGREE = 3  # eq · Az · Bz
INNER_DEGREE = 2  # (ABC)(rx, ·) · z


class WitnessDoesNotSatisfy(Exception):  # Raised by prove() when witness checking is enabled and fails.
    pass


@dataclass(frozen=True)
class R1CSProof:
    sc_proof_phase1: SumcheckInstanceProof
    claims_phase2: tuple  # (Az~(rx), Bz~(rx), Cz~(rx))
    sc_proof_phase2: SumcheckInstanceProof
    eval_W: Fr
    proof_eval_W: object
    eval_E: Fr | None = None
    proof_eval_E: object = None

    @property
    def is_relaxed(self):
        return self.proof_eval_E is not None

    @classmethod
    def prove(cls, shape, u, io, w_poly, pcs, transcript, w_blinds=None, E_poly=None, E_blinds=None):  # -> (proof, rx, ry).
        u = u if isinstance(u, Fr) else Fr(u)
        relaxed = E_poly is not None
        transcript.append_protocol_name(b"R1CS proof")

        z = shape.z_vector(u, io, w_poly.evals)
        Az, Bz, Cz = shape.multiply_vec(z)

        tau = transcript.challenge_vector(b"challenge_tau", shape.num_rounds_x)
        eq_tau = DensePolynomial(EqPolynomial(tau).evals())
        polys = [eq_tau, DensePolynomial(Az), DensePolynomial(Bz), DensePolynomial(Cz)]
        if relaxed:
            polys.append(E_poly)

            def comb_outer(e, a, b, c, err):
                return e * (a * b - u * c - err)
        else:
            def comb_outer(e, a, b, c):
                return e * (a * b - u * c)

        LOGGER.debug("R1CS prover: outer sum-check over %d rounds", shape.num_rounds_x)
        sc_proof_phase1, rx, evals = SumcheckInstanceProof.prove(
            shape.num_rounds_x, polys, comb_outer, OUTER_DEGREE, transcript
        )
        claims_phase2 = tuple(evals[1:4])
        transcript.append_scalars(b"claims_phase2", claims_phase2)

        eval_E = proof_eval_E = None
        if relaxed:
            eval_E = evals[4]
            transcript.append_scalar(b"eval_E", eval_E)
            _, proof_eval_E = pcs.open(E_poly, rx, transcript, E_blinds)

        r_A = transcript.challenge_scalar(b"challenge_Az")
        r_B = transcript.challenge_scalar(b"challenge_Bz")
        r_C = transcript.challenge_scalar(b"challenge_Cz")
        A_rx, B_rx, C_rx = shape.compute_eval_table_sparse(EqPolynomial(rx).evals())
        abc = DensePolynomial([r_A * a + r_B * b + r_C * c for a, b, c in zip(A_rx, B_rx, C_rx)])

        LOGGER.debug("R1CS prover: inner sum-check over %d rounds", shape.num_rounds_y)
        sc_proof_phase2, ry, _ = SumcheckInstanceProof.prove(
            shape.num_rounds_y, [abc, DensePolynomial(z)], lambda a, b: a * b, INNER_DEGREE, transcript
        )

        eval_W = w_poly.evaluate(ry[1:])
        transcript.append_scalar(b"eval_W", eval_W)
        _, proof_eval_W = pcs.open(w_poly, ry[1:], transcript, w_blinds)

        proof = cls(sc_proof_phase1, claims_phase2, sc_proof_phase2, eval_W, proof_eval_W, eval_E, proof_eval_E)
        return proof, rx, ry

    def verify(self, num_rounds_x, num_rounds_y, u, io, comm_W, pcs, transcript, matrix_evals, comm_E=None):
        """Replay the argument; returns ``(rx, ry)``.

        ``matrix_evals(rx, ry)`` must return ``(A~(rx, ry), B~(rx, ry), C~(rx, ry))``.
        Raises ``SumcheckInconsistent`` or ``CommitmentOpenFailed`` on rejection.
        """
        u = u if isinstance(u, Fr) else Fr(u)
        relaxed = comm_E is not None
        if relaxed != self.is_relaxed:
            raise SumcheckInconsistent("error-vector opening present for a plain instance or missing for a relaxed one")
        if len(self.claims_phase2) != 3:
            raise SumcheckInconsistent("expected three phase-2 claims")
        transcript.append_protocol_name(b"R1CS proof")

        tau = transcript.challenge_vector(b"challenge_tau", num_rounds_x)
        claim_phase1, rx = self.sc_proof_phase1.verify(Fr.zero(), num_rounds_x, OUTER_DEGREE, transcript)
        Az_claim, Bz_claim, Cz_claim = self.claims_phase2
        transcript.append_scalars(b"claims_phase2", self.claims_phase2)

        eval_E = Fr.zero()
        if relaxed:
            eval_E = self.eval_E
            transcript.append_scalar(b"eval_E", eval_E)
            pcs.verify_opening(comm_E, rx, eval_E, self.proof_eval_E, transcript)

        expected = EqPolynomial(tau).evaluate(rx) * (Az_claim * Bz_claim - u * Cz_claim - eval_E)
        if expected != claim_phase1:
            raise SumcheckInconsistent("outer sum-check final claim does not match the phase-2 claims")

        r_A = transcript.challenge_scalar(b"challenge_Az")
        r_B = transcript.challenge_scalar(b"challenge_Bz")
        r_C = transcript.challenge_scalar(b"challenge_Cz")
        claim_phase2 = r_A * Az_claim + r_B * Bz_claim + r_C * Cz_claim
        claim_final, ry = self.sc_proof_phase2.verify(claim_phase2, num_rounds_y, INNER_DEGREE, transcript)

        transcript.append_scalar(b"eval_W", self.eval_W)
        pcs.verify_opening(comm_W, ry[1:], self.eval_W, self.proof_eval_W, transcript)

        eval_pub = public_input_poly(num_rounds_y - 1, u, io).evaluate(ry[1:])
        eval_z = (Fr.one() - ry[0]) * eval_pub + ry[0] * self.eval_W
        A_r, B_r, C_r = matrix_evals(rx, ry)
        if (r_A * A_r + r_B * B_r + r_C * C_r) * eval_z != claim_final:
            raise SumcheckInconsistent("inner sum-check final claim does not match (ABC)(rx, ry) · z(ry)")
        return rx, ry

    def write(self, w):
        self.sc_proof_phase1.write(w)
        w.scalars(self.claims_phase2)
        self.sc_proof_phase2.write(w)
        w.scalar(self.eval_W)
        self.proof_eval_W.write(w)
        w.u8(1 if self.is_relaxed else 0)
        if self.is_relaxed:
            w.scalar(self.eval_E)
            self.proof_eval_E.write(w)

    @classmethod
    def read(cls, r, pcs):
        sc1 = SumcheckInstanceProof.read(r)
        claims = tuple(r.scalars())
        sc2 = SumcheckInstanceProof.read(r)
        eval_W = r.scalar()
        proof_eval_W = pcs.read_proof(r)
        eval_E = proof_eval_E = None
        flag = r.u8()
        if flag == 1:
            eval_E = r.scalar()
            proof_eval_E = pcs.read_proof(r)
        elif flag != 0:
            raise SerializationError(f"invalid relaxed flag {flag}")
        return cls(sc1, claims, sc2, eval_W, proof_eval_W, eval_E, proof_eval_E)
