"""Hyrax-style vector-commitment PCS.

A table of ``2^ℓ`` evaluations is viewed as a ``2^⌈ℓ/2⌉ × 2^⌊ℓ/2⌋`` matrix ``M``.
Each row is committed with a Pedersen vector commitment over generators derived
from a public label, so there is no trusted setup. To open at ``r`` the point is
split into ``eq(r, ·) = L ⊗ R``; the prover sends ``L·M`` (one row's worth of
scalars) and the verifier checks it against ``Σ L_i C_i`` before computing
``<L·M, R>``. Proof size and verifier work are both ``O(2^{ℓ/2})``.
"""

import logging  # setup diagnostics
from dataclasses import dataclass  # commitment/proof containers

from curve import add, hash_to_g1, msm, mul  # group ops + generator derivation
from field import Fr  # BN254 scalar field
from parallel import par_map  # row commitments in parallel
from pcs import CommitmentOpenFailed, PolyCommitmentScheme  # backend interface
from polynomials import DimensionMismatch, EqPolynomial, inner_product  # factored eq tables

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class HyraxCommitment:  # One Pedersen commitment per matrix row.
    row_comms: tuple

    def write(self, w):
        w.points(self.row_comms)

    @classmethod
    def read(cls, r):
        return cls(tuple(r.points()))


@dataclass(frozen=True)
class HyraxOpeningProof:  # L·M and the matching combination of row blinds.
    LZ: tuple
    blind: Fr

    def write(self, w):
        w.scalars(self.LZ)
        w.scalar(self.blind)

    @classmethod
    def read(cls, r):
        return cls(tuple(r.scalars()), r.scalar())


class HyraxPCS(PolyCommitmentScheme):  # Row-wise Pedersen commitments with tensor-structured openings.
    NAME = "hyrax"
    commitment_type = HyraxCommitment
    proof_type = HyraxOpeningProof

    def __init__(self, gens, h, max_num_vars, hiding=False):
        self.gens = list(gens)
        self.h = h
        self.max_num_vars = int(max_num_vars)
        self.hiding = bool(hiding)

    @classmethod
    def setup(cls, max_num_vars, label=b"hyrax", rng=None, hiding=False):  # rng unused: generators are public.
        _, right_num_vars = EqPolynomial.compute_factored_lens(int(max_num_vars))
        points = hash_to_g1(label, (1 << right_num_vars) + 1)
        LOGGER.debug("hyrax setup: %d generators for up to %d variables", len(points) - 1, max_num_vars)
        return cls(points[:-1], points[-1], max_num_vars, hiding=hiding)

    def _dims(self, num_vars):  # (rows, cols) of the evaluation matrix.
        if num_vars > self.max_num_vars:
            raise DimensionMismatch(f"polynomial has {num_vars} variables, setup supports {self.max_num_vars}")
        left, right = EqPolynomial.compute_factored_lens(num_vars)
        return 1 << left, 1 << right

    def commit(self, poly, random_tape=None):
        rows, cols = self._dims(poly.num_vars)
        if self.hiding:
            if random_tape is None:
                raise ValueError("hiding commitments need a random tape")
            blinds = random_tape.random_vector(b"poly_blinds", rows)
        else:
            blinds = [Fr.zero()] * rows
        gens = self.gens[:cols]
        evals = poly.evals

        def commit_row(i):
            C = msm(gens, evals[i * cols : (i + 1) * cols])
            return add(C, mul(self.h, blinds[i])) if self.hiding else C

        return HyraxCommitment(tuple(par_map(commit_row, range(rows)))), (blinds if self.hiding else None)

    def open(self, poly, point, transcript, blinds=None):
        if len(point) != poly.num_vars:
            raise DimensionMismatch(f"point has {len(point)} coordinates, polynomial has {poly.num_vars} variables")
        rows, cols = self._dims(poly.num_vars)
        L, R = EqPolynomial(point).compute_factored_evals()
        LZ = [Fr.zero()] * cols
        for i in range(rows):
            row = poly.evals[i * cols : (i + 1) * cols]
            for j in range(cols):
                LZ[j] += L[i] * row[j]
        blind = inner_product(L, list(blinds)) if blinds is not None else Fr.zero()
        transcript.append_protocol_name(b"hyrax_eval")
        transcript.append_scalars(b"LZ", LZ)
        transcript.append_scalar(b"LZ_blind", blind)
        return inner_product(LZ, R), HyraxOpeningProof(tuple(LZ), blind)

    def verify_opening(self, commitment, point, value, proof, transcript):
        try:
            rows, cols = self._dims(len(point))
        except DimensionMismatch as e:
            raise CommitmentOpenFailed(str(e)) from e
        if len(commitment.row_comms) != rows or len(proof.LZ) != cols:
            raise CommitmentOpenFailed("commitment/proof shape does not match the opening point")
        transcript.append_protocol_name(b"hyrax_eval")
        transcript.append_scalars(b"LZ", proof.LZ)
        transcript.append_scalar(b"LZ_blind", proof.blind)
        L, R = EqPolynomial(point).compute_factored_evals()
        lhs = msm(commitment.row_comms, L)
        rhs = add(msm(self.gens[:cols], proof.LZ), mul(self.h, proof.blind))
        if lhs != rhs:
            raise CommitmentOpenFailed("L·M is inconsistent with the row commitments")
        if inner_product(list(proof.LZ), R) != value:
            raise CommitmentOpenFailed("claimed value does not match <L·M, R>")

    def combine_commitments(self, commitments, coeffs):
        commitments = list(commitments)
        rows = len(commitments[0].row_comms)
        if any(len(c.row_comms) != rows for c in commitments):
            raise DimensionMismatch("cannot combine commitments with different row counts")
        return HyraxCommitment(tuple(msm([c.row_comms[i] for c in commitments], coeffs) for i in range(rows)))

    def combine_blinds(self, blinds, coeffs):
        blinds = list(blinds)
        if any(b is None for b in blinds):
            return None
        return [inner_product([b[i] for b in blinds], list(coeffs)) for i in range(len(blinds[0]))]
