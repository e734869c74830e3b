"""Zeromorph: multilinear openings from univariate KZG.

A multilinear ``f`` on ``n`` variables is committed as the univariate polynomial
``f^(X) = Σ_i f_i X^i`` over its evaluation table. For ``u = (u_0, .., u_{n-1})``
(``u_k`` owns bit ``k`` of the table index) there are quotients ``q_k`` on ``k``
variables with

    f - v = Σ_k (X_k - u_k) · q_k(X_0, .., X_{k-1}),

which under the univariate map becomes

    f^(X) - v·Φ_n(X) = Σ_k (X^{2^k} Φ_{n-k-1}(X^{2^{k+1}}) - u_k Φ_{n-k}(X^{2^k})) · q^_k(X),

with ``Φ_k(X) = Σ_{i<2^k} X^i``. The prover commits to every ``q^_k``, proves
their degree bounds with one shifted aggregate ``q^ = Σ y^k X^{N_max-2^k} q^_k``
and checks both identities at a random ``x`` with a single KZG opening of
``ζ_x + z·Z_x`` to zero. ``N_max`` is the SRS size, so ``q^`` only fits when
every ``q^_k`` has degree below ``2^k``, whatever the size of ``f``.
"""

import logging  # setup diagnostics
from dataclasses import dataclass  # commitment/proof containers

from curve import msm  # homomorphic combinations
from field import Fr  # BN254 scalar field
from kzg import UnivariateKZG, divide_by_linear  # univariate backend
from pcs import CommitmentOpenFailed, PolyCommitmentScheme  # backend interface
from polynomials import DimensionMismatch  # shape errors

LOGGER = logging.getLogger(__name__)


def phi(x, k):  # Φ_k(x) = ∏_{j<k} (1 + x^{2^j}) = Σ_{i<2^k} x^i.
    out = Fr.one()
    p = x
    for _ in range(k):
        out *= Fr.one() + p
        p = p * p
    return out


def compute_quotients(evals, u):  # -> ([q_0, .., q_{n-1}], f(u)); q_k has 2^k entries.
    g = list(evals)
    n = len(u)
    quotients = [None] * n
    for k in range(n - 1, -1, -1):
        half = 1 << k
        lo, hi = g[:half], g[half:]
        q = [b - a for a, b in zip(lo, hi)]
        quotients[k] = q
        g = [a + u[k] * d for a, d in zip(lo, q)]
    return quotients, g[0]


def quotient_coeffs(x, u, n):  # c_k(x) = x^{2^k} Φ_{n-k-1}(x^{2^{k+1}}) - u_k Φ_{n-k}(x^{2^k}).
    out = []
    x_pow = x  # x^{2^k}
    for k in range(n):
        x_next = x_pow * x_pow
        out.append(x_pow * phi(x_next, n - k - 1) - u[k] * phi(x_pow, n - k))
        x_pow = x_next
    return out


@dataclass(frozen=True)
class ZeromorphCommitment:  # KZG commitment to the evaluation table read as coefficients.
    C: object

    def write(self, w):
        w.point(self.C)

    @classmethod
    def read(cls, r):
        return cls(r.point())


@dataclass(frozen=True)
class ZeromorphProof:  # Quotient commitments, degree-check aggregate and the final KZG witness.
    q_k_comms: tuple
    q_hat_comm: object
    pi: object

    def write(self, w):
        w.points(self.q_k_comms)
        w.point(self.q_hat_comm)
        w.point(self.pi)

    @classmethod
    def read(cls, r):
        return cls(tuple(r.points()), r.point(), r.point())


class ZeromorphPCS(PolyCommitmentScheme):  # Quotient-based multilinear PCS over a KZG SRS.
    NAME = "zeromorph"
    commitment_type = ZeromorphCommitment
    proof_type = ZeromorphProof

    def __init__(self, pk, vk, max_num_vars):
        self.pk = pk
        self.vk = vk
        self.max_num_vars = int(max_num_vars)

    @classmethod
    def setup(cls, max_num_vars, label=b"zeromorph", rng=None):  # label unused: the SRS comes from a sampled trapdoor.
        max_num_vars = int(max_num_vars)
        pk, vk = UnivariateKZG.setup((1 << max_num_vars) - 1, rng=rng)
        LOGGER.debug("zeromorph setup: up to %d variables", max_num_vars)
        return cls(pk, vk, max_num_vars)

    @property
    def max_degree_bound(self):  # N_max: number of SRS powers.
        return len(self.pk.powers_of_g)

    def _check(self, num_vars):
        if num_vars > self.max_num_vars:
            raise DimensionMismatch(f"polynomial has {num_vars} variables, setup supports {self.max_num_vars}")

    def commit(self, poly, random_tape=None):  # Not hiding: random_tape is ignored.
        self._check(poly.num_vars)
        return ZeromorphCommitment(UnivariateKZG.commit(self.pk, poly.evals)), None

    def open(self, poly, point, transcript, blinds=None):
        n = poly.num_vars
        if len(point) != n:
            raise DimensionMismatch(f"point has {len(point)} coordinates, polynomial has {n} variables")
        self._check(n)
        N_max = self.max_degree_bound
        u = list(reversed(point))
        quotients, value = compute_quotients(poly.evals, u)
        q_k_comms = [UnivariateKZG.commit(self.pk, q) for q in quotients]

        transcript.append_protocol_name(b"zeromorph")
        transcript.append_scalar(b"eval", value)
        transcript.append_points(b"q_k_comms", q_k_comms)
        y = transcript.challenge_scalar(b"zm_y")

        q_hat = [Fr.zero()] * N_max
        y_pow = Fr.one()
        for k, q in enumerate(quotients):
            offset = N_max - (1 << k)
            for i, c in enumerate(q):
                q_hat[offset + i] += y_pow * c
            y_pow *= y
        q_hat_comm = UnivariateKZG.commit(self.pk, q_hat)

        transcript.append_point(b"q_hat_comm", q_hat_comm)
        x = transcript.challenge_scalar(b"zm_x")
        z = transcript.challenge_scalar(b"zm_z")

        # ζ_x + z·Z_x, which vanishes at x.
        combined = list(q_hat)
        for i, f_i in enumerate(poly.evals):
            combined[i] += z * f_i
        combined[0] -= z * value * phi(x, n)
        coeffs = quotient_coeffs(x, u, n)
        y_pow = Fr.one()
        for k, q in enumerate(quotients):
            scale = y_pow * x ** (N_max - (1 << k)) + z * coeffs[k]
            for i, c in enumerate(q):
                combined[i] -= scale * c
            y_pow *= y
        witness, _ = divide_by_linear(combined, x)
        pi = UnivariateKZG.commit(self.pk, witness)
        return value, ZeromorphProof(tuple(q_k_comms), q_hat_comm, pi)

    def verify_opening(self, commitment, point, value, proof, transcript):
        n = len(point)
        if n > self.max_num_vars:
            raise CommitmentOpenFailed(f"point has {n} coordinates, setup supports {self.max_num_vars}")
        if len(proof.q_k_comms) != n:
            raise CommitmentOpenFailed(f"proof has {len(proof.q_k_comms)} quotient commitments, expected {n}")
        N_max = self.max_degree_bound
        u = list(reversed(point))

        transcript.append_protocol_name(b"zeromorph")
        transcript.append_scalar(b"eval", value)
        transcript.append_points(b"q_k_comms", proof.q_k_comms)
        y = transcript.challenge_scalar(b"zm_y")
        transcript.append_point(b"q_hat_comm", proof.q_hat_comm)
        x = transcript.challenge_scalar(b"zm_x")
        z = transcript.challenge_scalar(b"zm_z")

        points = [proof.q_hat_comm, commitment.C, self.vk.g]
        scalars = [Fr.one(), z, -(z * value * phi(x, n))]
        coeffs = quotient_coeffs(x, u, n)
        y_pow = Fr.one()
        for k, C_k in enumerate(proof.q_k_comms):
            points.append(C_k)
            scalars.append(-(y_pow * x ** (N_max - (1 << k)) + z * coeffs[k]))
            y_pow *= y
        C = msm(points, scalars)
        if not UnivariateKZG.verify(self.vk, C, x, Fr.zero(), proof.pi):
            raise CommitmentOpenFailed("pairing check failed")

    def combine_commitments(self, commitments, coeffs):
        return ZeromorphCommitment(msm([c.C for c in commitments], list(coeffs)))
