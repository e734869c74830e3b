from field import Fr, batch_inverse  # BN254 scalar field + batched inversion
from parallel import par_chunks  # per-round table folding

class DimensionMismatch(ValueError):  # Raised when a point, table or matrix has the wrong shape.
    pass

def log2_pow2(n):  # Compute log2(n) for n a power of two.
    n = int(n)
    if n <= 0 or (n & (n - 1)) != 0:
        raise DimensionMismatch(f"expected power-of-two length, got {n}")
    return n.bit_length() - 1

def next_pow2(n):  # Smallest power of two >= n (and >= 1).
    n = int(n)
    return 1 if n <= 1 else 1 << (n - 1).bit_length()

def _fr(x):
    return x if isinstance(x, Fr) else Fr(x)

def inner_product(a, b):  # Σ a_i * b_i over Fr.
    if len(a) != len(b):
        raise DimensionMismatch("inner product of unequal-length vectors")
    out = Fr.zero()
    for x, y in zip(a, b):
        out += x * y
    return out

class UniPoly:  # Univariate polynomial with coefficients in Fr; one sum-check round message.
    def __init__(self, coeffs):  # Store coefficients in ascending order (c0, c1, ...).
        self.coeffs = [_fr(c) for c in coeffs]

    @classmethod
    def from_evals(cls, evals):  # Interpolate the unique polynomial through (i, evals[i]), i = 0..d.
        evals = [_fr(e) for e in evals]
        n = len(evals)
        if n == 0:
            raise DimensionMismatch("cannot interpolate zero evaluations")
        bases, denoms = [], []
        for i in range(n):
            basis = [Fr.one()]  # ∏_{j≠i} (X - j), ascending coefficients
            denom = Fr.one()
            for j in range(n):
                if j == i:
                    continue
                nxt = [Fr.zero()] * (len(basis) + 1)
                for k, c in enumerate(basis):
                    nxt[k] -= c * j
                    nxt[k + 1] += c
                basis = nxt
                denom *= i - j
            bases.append(basis)
            denoms.append(denom)
        coeffs = [Fr.zero()] * n
        for basis, e, inv in zip(bases, evals, batch_inverse(denoms)):
            scale = e * inv
            for k, c in enumerate(basis):
                coeffs[k] += c * scale
        return cls(coeffs)

    def degree(self):  # Degree bound implied by the coefficient count.
        return max(0, len(self.coeffs) - 1)

    def evaluate(self, x):  # Evaluate by Horner.
        x = _fr(x)
        out = Fr.zero()
        for c in reversed(self.coeffs):
            out = out * x + c
        return out

    def eval_at_zero(self):
        return self.coeffs[0] if self.coeffs else Fr.zero()

    def eval_at_one(self):
        out = Fr.zero()
        for c in self.coeffs:
            out += c
        return out

    def __eq__(self, other):
        return isinstance(other, UniPoly) and self.coeffs == other.coeffs

    def __repr__(self):
        return f"UniPoly({[int(c) for c in self.coeffs]})"

class EqPolynomial:  # eq(r, x) = ∏ (r_i*x_i + (1-r_i)*(1-x_i)) for a fixed point r.
    def __init__(self, r):  # Store the fixed point r (big-endian: r[0] is the top variable).
        self.r = [_fr(x) for x in r]

    @staticmethod
    def mle(x, y):  # Compute ∏ (x_i*y_i + (1-x_i)*(1-y_i)).
        if len(x) != len(y):
            raise DimensionMismatch("mle requires equal-length vectors")
        out = Fr.one()
        one = Fr.one()
        for xi, yi in zip(x, y):
            xi, yi = _fr(xi), _fr(yi)
            out *= xi * yi + (one - xi) * (one - yi)
        return out

    def evaluate(self, rx):  # eq(r, rx).
        return EqPolynomial.mle(self.r, rx)

    def evals(self):  # Table { eq(r, b) : b∈{0,1}^n } in big-endian order.
        return EqPolynomial.evals_for(self.r)

    @staticmethod
    def evals_for(r, scaling_factor=None):  # Table for an explicit point, optionally scaled.
        evals = [Fr.one() if scaling_factor is None else _fr(scaling_factor)]
        for x in r:
            x = _fr(x)
            nxt = [Fr.zero()] * (2 * len(evals))
            for i, s in enumerate(evals):
                hi = s * x
                nxt[2 * i] = s - hi
                nxt[2 * i + 1] = hi
            evals = nxt
        return evals

    @staticmethod
    def compute_factored_lens(ell):  # (row vars, column vars) split used by row-wise commitments.
        return ell - ell // 2, ell // 2

    def compute_factored_evals(self):  # (L, R) with eq(r, ·) = L ⊗ R.
        left_num_vars, _ = EqPolynomial.compute_factored_lens(len(self.r))
        return (
            EqPolynomial.evals_for(self.r[:left_num_vars]),
            EqPolynomial.evals_for(self.r[left_num_vars:]),
        )

class DensePolynomial:  # Multilinear polynomial given by its evaluation table over {0,1}^ℓ.
    def __init__(self, evals):  # evals[i] is the value at the big-endian bit decomposition of i.
        self.evals = [_fr(e) for e in evals]
        self.num_vars = log2_pow2(len(self.evals))

    @classmethod
    def zero(cls, num_vars):
        return cls([Fr.zero()] * (1 << int(num_vars)))

    def __len__(self):
        return len(self.evals)

    def __getitem__(self, i):
        return self.evals[i]

    def __eq__(self, other):
        return isinstance(other, DensePolynomial) and self.evals == other.evals

    def clone(self):
        p = object.__new__(DensePolynomial)
        p.evals = list(self.evals)
        p.num_vars = self.num_vars
        return p

    def evaluate(self, r):  # Multilinear extension at an arbitrary point.
        if len(r) != self.num_vars:
            raise DimensionMismatch(f"point has {len(r)} coordinates, polynomial has {self.num_vars} variables")
        return inner_product(EqPolynomial.evals_for(r), self.evals)

    def _fold_top(self, r):  # Chunks of Z_lo + r*(Z_hi - Z_lo).
        if self.num_vars == 0:
            raise DimensionMismatch("cannot bind a variable of a constant polynomial")
        r = _fr(r)
        n = len(self.evals) // 2
        Z = self.evals

        def fold(start, end):
            return [Z[i] + r * (Z[i + n] - Z[i]) for i in range(start, end)]

        return n, par_chunks(fold, n)

    def bind(self, r):  # New polynomial on ℓ-1 variables with the top variable fixed to r.
        _, chunks = self._fold_top(r)
        p = object.__new__(DensePolynomial)
        p.evals = [x for chunk in chunks for x in chunk]
        p.num_vars = self.num_vars - 1
        return p

    def bound_poly_var_top(self, r):  # In-place variant of `bind`; the table shrinks to half its length.
        n, chunks = self._fold_top(r)
        pos = 0
        for chunk in chunks:
            self.evals[pos : pos + len(chunk)] = chunk
            pos += len(chunk)
        del self.evals[n:]
        self.num_vars -= 1

    @staticmethod
    def linear_combination(polys, coeffs):  # Σ coeffs_i * polys_i (same variable count).
        polys, coeffs = list(polys), [_fr(c) for c in coeffs]
        if not polys or len(polys) != len(coeffs):
            raise DimensionMismatch("linear combination needs one coefficient per polynomial")
        n = len(polys[0])
        if any(len(p) != n for p in polys):
            raise DimensionMismatch("linear combination of polynomials with different sizes")
        out = [Fr.zero()] * n
        for p, c in zip(polys, coeffs):
            for i, e in enumerate(p.evals):
                out[i] += c * e
        return DensePolynomial(out)

class SparsePolynomial:  # Multilinear polynomial given by its non-zero (index, value) entries.
    def __init__(self, num_vars, entries):
        self.num_vars = int(num_vars)
        self.entries = [(int(i), _fr(v)) for i, v in entries]
        for i, _ in self.entries:
            if not 0 <= i < (1 << self.num_vars):
                raise DimensionMismatch(f"sparse entry index {i} out of range for {self.num_vars} variables")

    def _chi(self, idx, r):  # eq(bits(idx), r) without materializing the table.
        one = Fr.one()
        out = one
        for j, rj in enumerate(r):
            bit = (idx >> (self.num_vars - 1 - j)) & 1
            out *= rj if bit else one - rj
        return out

    def evaluate(self, r):
        if len(r) != self.num_vars:
            raise DimensionMismatch(f"point has {len(r)} coordinates, polynomial has {self.num_vars} variables")
        r = [_fr(x) for x in r]
        out = Fr.zero()
        for idx, v in self.entries:
            out += v * self._chi(idx, r)
        return out
