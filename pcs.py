"""Backend-agnostic multilinear polynomial commitment interface.

The sum-check engine and the R1CS argument only ever talk to this interface; a
concrete backend (``hyrax.HyraxPCS`` or ``zeromorph.ZeromorphPCS``) is chosen once,
at setup time, and passed down the call chain.
"""

import logging  # rejection diagnostics
from abc import ABC, abstractmethod  # interface definition

LOGGER = logging.getLogger(__name__)


class CommitmentOpenFailed(Exception):  # Raised when an opening proof does not verify.
    pass


class PolyCommitmentScheme(ABC):  # commit / open / verify over DensePolynomial.
    NAME = ""  # short backend identifier
    commitment_type = None  # class with write(w) / read(r)
    proof_type = None  # class with write(w) / read(r)

    @classmethod
    @abstractmethod
    def setup(cls, max_num_vars, label, rng=None):  # Public parameters for polynomials of up to max_num_vars variables.
        raise NotImplementedError()

    @abstractmethod
    def commit(self, poly, random_tape=None):  # -> (commitment, blinds); blinds is None for non-hiding backends.
        raise NotImplementedError()

    @abstractmethod
    def open(self, poly, point, transcript, blinds=None):  # -> (value, opening proof).
        raise NotImplementedError()

    @abstractmethod
    def verify_opening(self, commitment, point, value, proof, transcript):  # Raises CommitmentOpenFailed.
        raise NotImplementedError()

    @abstractmethod
    def combine_commitments(self, commitments, coeffs):  # Commitment to Σ coeffs_i * poly_i.
        raise NotImplementedError()

    def combine_blinds(self, blinds, coeffs):  # Blinds matching `combine_commitments`; None when not hiding.
        return None

    def verify(self, commitment, point, value, proof, transcript):  # Boolean form of verify_opening.
        try:
            self.verify_opening(commitment, point, value, proof, transcript)
        except CommitmentOpenFailed as e:
            LOGGER.debug("%s opening rejected: %s", self.NAME, e)
            return False
        return True

    def read_commitment(self, r):
        return self.commitment_type.read(r)

    def read_proof(self, r):
        return self.proof_type.read(r)
