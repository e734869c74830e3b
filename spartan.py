"""End-to-end provers and verifiers for R1CS satisfiability.

Three variants share the argument in ``r1cs_proof``:

- ``NIZK``: the verifier holds the R1CS matrices and evaluates them itself.
- ``SNARK``: the matrices are committed once (``SNARK.encode``); the verifier
  only holds that computation commitment and checks the three matrix
  evaluations through one batched PCS opening.
- ``CRR1CSSNARK``: a SNARK for a committed relaxed instance
  ``(comm_W, comm_E, u, io)``, typically produced by a folding scheme.

The PCS backend is fixed by whoever calls ``setup`` and passed into every
prove/verify call. Each proof starts a fresh transcript bound to the padded
dimensions, the matrix digest, ``u``, the public input and the instance
commitments.
"""

import logging  # rejection diagnostics
import os  # debug-check switch
from dataclasses import dataclass  # key/commitment containers

from field import Fr  # BN254 scalar field
from pcs import CommitmentOpenFailed  # opening failures
from polynomials import DensePolynomial, DimensionMismatch, inner_product, log2_pow2  # witness/error tables
from r1cs import RelaxedR1CSWitness  # relaxed witness container
from r1cs_proof import R1CSProof, WitnessDoesNotSatisfy  # two-phase argument
from sumchecks import SumcheckInconsistent  # round failures
from transcript import ProofTranscript, RandomTape  # Fiat-Shamir + blinding randomness
from wire import SerializationError, decode, encode  # canonical bytes

LOGGER = logging.getLogger(__name__)

DEBUG_CHECKS_ENV = "SPARTAN_DEBUG_CHECKS"  # "1" makes prove() check the witness first
REJECTIONS = (DimensionMismatch, SumcheckInconsistent, CommitmentOpenFailed, SerializationError)


def debug_checks_enabled(check_witness=None):  # Explicit argument wins over the environment.
    if check_witness is not None:
        return bool(check_witness)
    return os.environ.get(DEBUG_CHECKS_ENV, "").strip().lower() in ("1", "true", "yes", "on")


def _fr(x):
    return x if isinstance(x, Fr) else Fr(x)


def _instance_transcript(label, num_cons_padded, num_cols, num_io, digest, u, io, commitments=()):
    t = ProofTranscript(label)
    t.append_u64(b"num_cons", num_cons_padded)
    t.append_u64(b"num_cols", num_cols)
    t.append_u64(b"num_io", num_io)
    t.append_message(b"r1cs_digest", digest)
    t.append_scalar(b"u", u)
    t.append_scalars(b"io", io)
    for name, comm in commitments:
        t.append_message(name, encode(comm))
    return t


def _check_io_len(io, num_io):
    if len(io) != num_io:
        raise DimensionMismatch(f"public input has {len(io)} entries, expected {num_io}")


# ---------------------------------------------------------------------------
# NIZK
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NIZK:  # Witness commitment plus the R1CS argument.
    comm_W: object
    r1cs_proof: R1CSProof

    PROTOCOL = b"Spartan NIZK proof"

    @classmethod
    def prove(cls, shape, io, witness, pcs, random_tape=None, check_witness=None):
        io = [_fr(x) for x in io]
        shape.check_io(io)
        w_poly = DensePolynomial(shape.pad_witness(witness))
        if debug_checks_enabled(check_witness) and not shape.is_sat(io, witness):
            raise WitnessDoesNotSatisfy("(Az)∘(Bz) != Cz")
        random_tape = random_tape or RandomTape(b"nizk_randomness")

        comm_W, blinds_W = pcs.commit(w_poly, random_tape)
        transcript = _instance_transcript(
            cls.PROTOCOL, shape.num_cons_padded, shape.num_cols, shape.num_io, shape.digest(), Fr.one(), io,
            [(b"comm_W", comm_W)],
        )
        proof, _, _ = R1CSProof.prove(shape, Fr.one(), io, w_poly, pcs, transcript, w_blinds=blinds_W)
        return cls(comm_W, proof)

    def verify(self, shape, io, pcs):  # -> bool; rejection reasons are logged at DEBUG.
        try:
            io = [_fr(x) for x in io]
            shape.check_io(io)
            transcript = _instance_transcript(
                self.PROTOCOL, shape.num_cons_padded, shape.num_cols, shape.num_io, shape.digest(), Fr.one(), io,
                [(b"comm_W", self.comm_W)],
            )
            self.r1cs_proof.verify(
                shape.num_rounds_x, shape.num_rounds_y, Fr.one(), io, self.comm_W, pcs, transcript, shape.evaluate
            )
        except REJECTIONS as e:
            LOGGER.debug("NIZK rejected: %s: %s", type(e).__name__, e)
            return False
        return True

    def write(self, w):
        self.comm_W.write(w)
        self.r1cs_proof.write(w)

    @classmethod
    def read(cls, r, pcs):
        return cls(pcs.read_commitment(r), R1CSProof.read(r, pcs))

    def to_bytes(self):
        return encode(self)

    @classmethod
    def from_bytes(cls, data, pcs):
        return decode(data, lambda r: cls.read(r, pcs))


# ---------------------------------------------------------------------------
# Computation commitment (shared by the SNARK variants)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ComputationCommitment:  # Public commitment to A~, B~, C~ over (x, y) plus the dimensions it was built for.
    num_cons_padded: int
    num_cols: int
    num_io: int
    digest: bytes
    comm_A: object
    comm_B: object
    comm_C: object

    @property
    def num_rounds_x(self):
        return log2_pow2(self.num_cons_padded)

    @property
    def num_rounds_y(self):
        return log2_pow2(self.num_cols)

    def write(self, w):
        w.u64(self.num_cons_padded)
        w.u64(self.num_cols)
        w.u64(self.num_io)
        w.message(self.digest)
        for c in (self.comm_A, self.comm_B, self.comm_C):
            c.write(w)

    @classmethod
    def read(cls, r, pcs):
        num_cons_padded, num_cols, num_io = r.u64(), r.u64(), r.u64()
        digest = r.message()
        return cls(num_cons_padded, num_cols, num_io, digest, *(pcs.read_commitment(r) for _ in range(3)))


@dataclass(frozen=True)
class ComputationDecommitment:  # Prover-side matrix tables and their commitment blinds.
    polys: tuple
    blinds: tuple


def encode_computation(shape, pcs, random_tape=None):  # -> (ComputationCommitment, ComputationDecommitment).
    random_tape = random_tape or RandomTape(b"encode_randomness")
    polys = shape.dense_matrix_polys()
    comms, blinds = zip(*(pcs.commit(p, random_tape) for p in polys))
    LOGGER.debug("encoded %d x %d matrices (%d nonzero entries)", shape.num_cons_padded, shape.num_cols, shape.num_nonzero())
    comm = ComputationCommitment(shape.num_cons_padded, shape.num_cols, shape.num_io, shape.digest(), *comms)
    return comm, ComputationDecommitment(tuple(polys), tuple(blinds))


def _prove_matrix_evals(decomm, inst_evals, rx, ry, pcs, transcript):  # One opening of Σ γ^i M_i at (rx, ry).
    transcript.append_protocol_name(b"matrix evaluations")
    transcript.append_scalars(b"inst_evals", inst_evals)
    gammas = transcript.challenge_scalar_powers(b"challenge_gamma", 3)
    joint = DensePolynomial.linear_combination(decomm.polys, gammas)
    joint_blinds = pcs.combine_blinds(decomm.blinds, gammas)
    _, proof = pcs.open(joint, list(rx) + list(ry), transcript, joint_blinds)
    return proof


def _check_inst_evals(inst_evals):
    if len(inst_evals) != 3:
        raise SumcheckInconsistent(f"expected three matrix evaluations, got {len(inst_evals)}")


def _verify_matrix_evals(comm, inst_evals, proof, rx, ry, pcs, transcript):
    transcript.append_protocol_name(b"matrix evaluations")
    transcript.append_scalars(b"inst_evals", inst_evals)
    gammas = transcript.challenge_scalar_powers(b"challenge_gamma", 3)
    joint = pcs.combine_commitments([comm.comm_A, comm.comm_B, comm.comm_C], gammas)
    pcs.verify_opening(joint, list(rx) + list(ry), inner_product(gammas, list(inst_evals)), proof, transcript)


# ---------------------------------------------------------------------------
# SNARK
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SNARK:  # NIZK argument plus claimed matrix evaluations and their batched opening.
    comm_W: object
    r1cs_proof: R1CSProof
    inst_evals: tuple
    proof_eval_ABC: object

    PROTOCOL = b"Spartan SNARK proof"

    @staticmethod
    def encode(shape, pcs, random_tape=None):  # Commit to the matrices once, ahead of any proof.
        return encode_computation(shape, pcs, random_tape)

    @classmethod
    def prove(cls, shape, decomm, io, witness, pcs, random_tape=None, check_witness=None):
        io = [_fr(x) for x in io]
        shape.check_io(io)
        w_poly = DensePolynomial(shape.pad_witness(witness))
        if debug_checks_enabled(check_witness) and not shape.is_sat(io, witness):
            raise WitnessDoesNotSatisfy("(Az)∘(Bz) != Cz")
        random_tape = random_tape or RandomTape(b"snark_randomness")

        comm_W, blinds_W = pcs.commit(w_poly, random_tape)
        transcript = _instance_transcript(
            cls.PROTOCOL, shape.num_cons_padded, shape.num_cols, shape.num_io, shape.digest(), Fr.one(), io,
            [(b"comm_W", comm_W)],
        )
        proof, rx, ry = R1CSProof.prove(shape, Fr.one(), io, w_poly, pcs, transcript, w_blinds=blinds_W)
        inst_evals = shape.evaluate(rx, ry)
        proof_eval_ABC = _prove_matrix_evals(decomm, inst_evals, rx, ry, pcs, transcript)
        return cls(comm_W, proof, tuple(inst_evals), proof_eval_ABC)

    def verify(self, comm, io, pcs):  # -> bool; only the computation commitment is needed.
        try:
            io = [_fr(x) for x in io]
            _check_io_len(io, comm.num_io)
            _check_inst_evals(self.inst_evals)
            transcript = _instance_transcript(
                self.PROTOCOL, comm.num_cons_padded, comm.num_cols, comm.num_io, comm.digest, Fr.one(), io,
                [(b"comm_W", self.comm_W)],
            )
            rx, ry = self.r1cs_proof.verify(
                comm.num_rounds_x, comm.num_rounds_y, Fr.one(), io, self.comm_W, pcs, transcript,
                lambda rx, ry: self.inst_evals,
            )
            _verify_matrix_evals(comm, self.inst_evals, self.proof_eval_ABC, rx, ry, pcs, transcript)
        except REJECTIONS as e:
            LOGGER.debug("SNARK rejected: %s: %s", type(e).__name__, e)
            return False
        return True

    def write(self, w):
        self.comm_W.write(w)
        self.r1cs_proof.write(w)
        w.scalars(self.inst_evals)
        self.proof_eval_ABC.write(w)

    @classmethod
    def read(cls, r, pcs):
        return cls(pcs.read_commitment(r), R1CSProof.read(r, pcs), tuple(r.scalars()), pcs.read_proof(r))

    def to_bytes(self):
        return encode(self)

    @classmethod
    def from_bytes(cls, data, pcs):
        return decode(data, lambda r: cls.read(r, pcs))


# ---------------------------------------------------------------------------
# Committed relaxed R1CS SNARK
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CRR1CSKey:  # Prover key: the shape plus its computation (de)commitment.
    shape: object
    comm: ComputationCommitment
    decomm: ComputationDecommitment

    @classmethod
    def setup(cls, shape, pcs, random_tape=None):
        comm, decomm = encode_computation(shape, pcs, random_tape)
        return cls(shape, comm, decomm)


@dataclass(frozen=True)
class CRR1CSSNARK:  # Argument for a committed relaxed instance (comm_W, comm_E, u, io).
    r1cs_proof: R1CSProof
    inst_evals: tuple
    proof_eval_ABC: object

    PROTOCOL = b"Spartan CRR1CS proof"

    @staticmethod
    def commit_witness(shape, witness, pcs, random_tape=None):  # -> (comm_W, comm_E, (blinds_W, blinds_E)).
        if not isinstance(witness, RelaxedR1CSWitness):
            witness = RelaxedR1CSWitness.from_r1cs_witness(shape, witness)
        W = DensePolynomial(shape.pad_witness(witness.W))
        E = DensePolynomial(shape.pad_error(witness.E))
        random_tape = random_tape or RandomTape(b"crr1cs_commit")
        comm_W, blinds_W = pcs.commit(W, random_tape)
        comm_E, blinds_E = pcs.commit(E, random_tape)
        return comm_W, comm_E, (blinds_W, blinds_E)

    @classmethod
    def prove(cls, key, instance, witness, pcs, blinds=None, check_witness=None):
        shape = key.shape
        io = [_fr(x) for x in instance.io]
        shape.check_io(io)
        u = _fr(instance.u)
        W = DensePolynomial(shape.pad_witness(witness.W))
        E = DensePolynomial(shape.pad_error(witness.E))
        if debug_checks_enabled(check_witness) and not shape.is_sat_relaxed(u, io, witness.W, witness.E):
            raise WitnessDoesNotSatisfy("(Az)∘(Bz) != u·(Cz) + E")
        blinds_W, blinds_E = blinds if blinds is not None else (None, None)

        transcript = _instance_transcript(
            cls.PROTOCOL, shape.num_cons_padded, shape.num_cols, shape.num_io, key.comm.digest, u, io,
            [(b"comm_W", instance.comm_W), (b"comm_E", instance.comm_E)],
        )
        proof, rx, ry = R1CSProof.prove(
            shape, u, io, W, pcs, transcript, w_blinds=blinds_W, E_poly=E, E_blinds=blinds_E
        )
        inst_evals = shape.evaluate(rx, ry)
        proof_eval_ABC = _prove_matrix_evals(key.decomm, inst_evals, rx, ry, pcs, transcript)
        return cls(proof, tuple(inst_evals), proof_eval_ABC)

    def verify(self, comm, instance, pcs):  # -> bool
        try:
            io = [_fr(x) for x in instance.io]
            _check_io_len(io, comm.num_io)
            _check_inst_evals(self.inst_evals)
            u = _fr(instance.u)
            transcript = _instance_transcript(
                self.PROTOCOL, comm.num_cons_padded, comm.num_cols, comm.num_io, comm.digest, u, io,
                [(b"comm_W", instance.comm_W), (b"comm_E", instance.comm_E)],
            )
            rx, ry = self.r1cs_proof.verify(
                comm.num_rounds_x, comm.num_rounds_y, u, io, instance.comm_W, pcs, transcript,
                lambda rx, ry: self.inst_evals, comm_E=instance.comm_E,
            )
            _verify_matrix_evals(comm, self.inst_evals, self.proof_eval_ABC, rx, ry, pcs, transcript)
        except REJECTIONS as e:
            LOGGER.debug("CRR1CS SNARK rejected: %s: %s", type(e).__name__, e)
            return False
        return True

    def write(self, w):
        self.r1cs_proof.write(w)
        w.scalars(self.inst_evals)
        self.proof_eval_ABC.write(w)

    @classmethod
    def read(cls, r, pcs):
        return cls(R1CSProof.read(r, pcs), tuple(r.scalars()), pcs.read_proof(r))

    def to_bytes(self):
        return encode(self)

    @classmethod
    def from_bytes(cls, data, pcs):
        return decode(data, lambda r: cls.read(r, pcs))
