import logging  # round-level diagnostics

from field import Fr  # BN254 scalar field
from parallel import par_chunks  # per-round evaluation split across workers
from polynomials import DimensionMismatch, UniPoly  # round message type

LOGGER = logging.getLogger(__name__)


class SumcheckInconsistent(Exception):  # Raised when a round message does not match the running claim.
    pass


def _round_evals(polys, comb_func, degree):  # [Σ_b comb(p_0(t, b), ..., p_k(t, b)) for t in 0..degree].
    half = len(polys[0]) // 2
    tables = [p.evals for p in polys]

    def partial(start, end):  # Per-worker accumulator over pair indices [start, end).
        acc = [Fr.zero()] * (degree + 1)
        for i in range(start, end):
            vals = [Z[i] for Z in tables]
            steps = [Z[i + half] - Z[i] for Z in tables]
            acc[0] += comb_func(*vals)
            for t in range(1, degree + 1):
                vals = [v + s for v, s in zip(vals, steps)]
                acc[t] += comb_func(*vals)
        return acc

    out = [Fr.zero()] * (degree + 1)
    for acc in par_chunks(partial, half):
        for t, v in enumerate(acc):
            out[t] += v
    return out


class SumcheckInstanceProof:  # Sum-check proof: one univariate round polynomial per variable.
    def __init__(self, polys):  # Store a list of UniPoly (round i eliminates variable i).
        self.polys = list(polys)

    def __eq__(self, other):
        return isinstance(other, SumcheckInstanceProof) and self.polys == other.polys

    def __repr__(self):
        return f"SumcheckInstanceProof({len(self.polys)} rounds)"

    @classmethod
    def prove(cls, num_rounds, polys, comb_func, degree, transcript):  # Returns (proof, r, final evaluations of each poly).
        """Prove Σ_{x∈{0,1}^ℓ} comb(p_0(x), ..., p_k(x)) for the caller's claimed sum.

        ``degree`` is the total degree of ``comb_func`` in one variable (the number of
        multilinear factors multiplied together); each round message carries
        ``degree + 1`` evaluations. The input tables are cloned, then bound in place
        one top variable per round. The prover never inspects the claim: an
        unsatisfied identity still produces a proof, which the verifier rejects.
        """
        num_rounds = int(num_rounds)
        polys = [p.clone() for p in polys]
        if not polys:
            raise ValueError("sum-check needs at least one polynomial")
        for p in polys:
            if p.num_vars != num_rounds:
                raise DimensionMismatch(f"polynomial has {p.num_vars} variables, sum-check runs {num_rounds} rounds")
        LOGGER.debug("sum-check prover: %d rounds, %d tables, degree %d", num_rounds, len(polys), int(degree))
        r = []
        round_polys = []
        for _ in range(num_rounds):
            poly = UniPoly.from_evals(_round_evals(polys, comb_func, int(degree)))
            transcript.append_scalars(b"sumcheck_poly", poly.coeffs)
            r_j = transcript.challenge_scalar(b"challenge_nextround")
            r.append(r_j)
            round_polys.append(poly)
            for p in polys:
                p.bound_poly_var_top(r_j)
        return cls(round_polys), r, [p[0] for p in polys]

    def verify(self, claim, num_rounds, degree_bound, transcript):  # Returns (final claim, challenges r).
        num_rounds = int(num_rounds)
        degree_bound = int(degree_bound)
        if len(self.polys) != num_rounds:
            raise SumcheckInconsistent(f"proof has {len(self.polys)} rounds, expected {num_rounds}")
        e = claim
        r = []
        for i, poly in enumerate(self.polys):
            if poly.degree() > degree_bound:
                raise SumcheckInconsistent(f"round {i}: degree {poly.degree()} exceeds bound {degree_bound}")
            if poly.eval_at_zero() + poly.eval_at_one() != e:
                raise SumcheckInconsistent(f"round {i}: g(0) + g(1) != running claim")
            transcript.append_scalars(b"sumcheck_poly", poly.coeffs)
            r_i = transcript.challenge_scalar(b"challenge_nextround")
            r.append(r_i)
            e = poly.evaluate(r_i)
        return e, r

    def write(self, w):  # Round count, then each round's coefficient vector.
        w.vec(self.polys, lambda p: w.scalars(p.coeffs))

    @classmethod
    def read(cls, r):
        return cls(r.vec(lambda: UniPoly(r.scalars())))
