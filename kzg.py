import logging  # setup diagnostics
import secrets  # setup trapdoor when no rng is supplied
from dataclasses import dataclass  # key containers

from curve import G1, G2, GT, add, msm, mul, multi_pairing, neg, sub  # group ops + pairing check
from field import Fr  # BN254 scalar field

LOGGER = logging.getLogger(__name__)


def poly_eval(coeffs, x):  # Horner evaluation of ascending coefficients.
    out = Fr.zero()
    for c in reversed(coeffs):
        out = out * x + c
    return out


def divide_by_linear(coeffs, x):  # (coeffs(X) - coeffs(x)) / (X - x) by synthetic division; returns (quotient, coeffs(x)).
    n = len(coeffs)
    if n == 0:
        return [], Fr.zero()
    q = [Fr.zero()] * max(n - 1, 0)
    acc = Fr.zero()
    for i in range(n - 1, 0, -1):
        acc = acc * x + coeffs[i]
        q[i - 1] = acc
    return q, acc * x + coeffs[0]


@dataclass(frozen=True)
class KZGProverKey:  # [τ^i]_1 for i < max_degree + 1.
    powers_of_g: tuple


@dataclass(frozen=True)
class KZGVerifierKey:  # [1]_1, [1]_2, [τ]_2.
    g: object
    h: object
    tau_h: object


class UnivariateKZG:  # KZG commitments to univariate polynomials in coefficient form.
    @staticmethod
    def setup(max_degree, rng=None):  # Structured reference string from a freshly sampled trapdoor (test-only ceremony).
        tau = Fr(secrets.randbelow(Fr.MODULUS - 1) + 1) if rng is None else Fr(rng.randrange(1, Fr.MODULUS))
        powers = []
        P = G1
        for _ in range(int(max_degree) + 1):
            powers.append(P)
            P = mul(P, tau)
        LOGGER.debug("kzg setup: %d powers", len(powers))
        return KZGProverKey(tuple(powers)), KZGVerifierKey(G1, G2, mul(G2, tau))

    @staticmethod
    def commit(pk, coeffs):
        coeffs = list(coeffs)
        if len(coeffs) > len(pk.powers_of_g):
            raise ValueError(f"degree {len(coeffs) - 1} exceeds SRS size {len(pk.powers_of_g)}")
        return msm(pk.powers_of_g[: len(coeffs)], coeffs)

    @staticmethod
    def open(pk, coeffs, x):  # -> (value, proof) where proof = [(p(X) - p(x)) / (X - x)]_1.
        q, value = divide_by_linear(list(coeffs), x)
        return value, UnivariateKZG.commit(pk, q)

    @staticmethod
    def verify(vk, commitment, x, value, proof):  # e(C - v·g + x·π, h) == e(π, τ·h).
        lhs = add(sub(commitment, mul(vk.g, value)), mul(proof, x))
        return multi_pairing([(vk.h, lhs), (neg(vk.tau_h), proof)]) == GT.one()
