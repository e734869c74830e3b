"""Rank-1 constraint systems and their relaxed variant.

Column layout. Constraints address the logical vector ``z = (u, io, w)`` (``u = 1``
for plain R1CS). Internally the columns are laid out as two power-of-two halves so
that the witness is a contiguous multilinear table::

    physical z = (u, io_0 .. io_{k-1}, 0 .. 0 | w_0 .. w_{V-1}, 0 .. 0)
                  <------------- V ------------><--------- V --------->

which gives ``z~(ry) = (1 - ry[0]) * pub~(ry[1:]) + ry[0] * w~(ry[1:])``. Rows are
padded with zero constraints up to ``m = next_pow2(num_cons)``; zero rows satisfy
``(Az)∘(Bz) = u(Cz) + E`` trivially (with ``E`` zero on the padding).
"""

import hashlib  # instance digest for transcript binding
from dataclasses import dataclass  # instance/witness containers

from field import Fr  # BN254 scalar field
from polynomials import DensePolynomial, DimensionMismatch, EqPolynomial, SparsePolynomial, log2_pow2, next_pow2  # multilinear layer


def _fr(x):
    return x if isinstance(x, Fr) else Fr(x)


def public_input_poly(num_vars, u, io):  # Sparse MLE of (u, io, 0, ..) over num_vars variables.
    entries = [(0, _fr(u))] + [(i + 1, _fr(x)) for i, x in enumerate(io)]
    if len(entries) > (1 << num_vars):
        raise DimensionMismatch(f"{len(entries) - 1} public inputs do not fit in {num_vars} variables")
    return SparsePolynomial(num_vars, [(i, v) for i, v in entries if not v.is_zero()])


class R1CSShape:  # Matrices A, B, C plus the dimensions needed to pad them.
    def __init__(self, num_cons, num_vars, num_io, A, B, C):  # A/B/C: iterables of (row, logical col, value).
        self.num_cons = int(num_cons)
        self.num_vars = int(num_vars)
        self.num_io = int(num_io)
        if self.num_cons < 1 or self.num_vars < 0 or self.num_io < 0:
            raise DimensionMismatch("R1CS needs at least one constraint and non-negative sizes")
        self.num_cons_padded = next_pow2(max(self.num_cons, 2))
        self.num_vars_padded = next_pow2(max(self.num_vars, self.num_io + 1, 2))
        self.num_cols = 2 * self.num_vars_padded
        self.A = self._physical("A", A)
        self.B = self._physical("B", B)
        self.C = self._physical("C", C)

    def _physical(self, name, entries):  # Validate logical entries, merge duplicates, drop zeros, relocate columns.
        width = 1 + self.num_io + self.num_vars
        merged = {}
        for row, col, val in entries:
            row, col = int(row), int(col)
            if not 0 <= row < self.num_cons:
                raise DimensionMismatch(f"{name}: row {row} outside [0, {self.num_cons})")
            if not 0 <= col < width:
                raise DimensionMismatch(f"{name}: column {col} outside [0, {width})")
            key = (row, self._col(col))
            merged[key] = merged.get(key, Fr.zero()) + _fr(val)
        return [(r, c, v) for (r, c), v in sorted(merged.items()) if not v.is_zero()]

    def _col(self, col):  # Logical column -> physical column.
        return col if col <= self.num_io else self.num_vars_padded + (col - self.num_io - 1)

    @property
    def num_rounds_x(self):  # Outer sum-check rounds (row variables).
        return log2_pow2(self.num_cons_padded)

    @property
    def num_rounds_y(self):  # Inner sum-check rounds (column variables).
        return log2_pow2(self.num_cols)

    @property
    def num_witness_vars(self):  # Variables of the committed witness polynomial.
        return log2_pow2(self.num_vars_padded)

    def num_nonzero(self):
        return max(len(self.A), len(self.B), len(self.C))

    def check_io(self, io):
        if len(io) != self.num_io:
            raise DimensionMismatch(f"public input has {len(io)} entries, expected {self.num_io}")

    def pad_witness(self, w):  # Witness padded to the committed table length.
        if len(w) != self.num_vars:
            raise DimensionMismatch(f"witness has {len(w)} entries, expected {self.num_vars}")
        return [_fr(x) for x in w] + [Fr.zero()] * (self.num_vars_padded - self.num_vars)

    def pad_error(self, E):  # Error vector padded to num_cons_padded.
        if len(E) not in (self.num_cons, self.num_cons_padded):
            raise DimensionMismatch(f"error vector has {len(E)} entries, expected {self.num_cons}")
        E = [_fr(x) for x in E]
        if any(not e.is_zero() for e in E[self.num_cons :]):
            raise DimensionMismatch("error vector is non-zero on padding rows")
        return E[: self.num_cons] + [Fr.zero()] * (self.num_cons_padded - self.num_cons)

    def z_vector(self, u, io, w_padded):  # Physical z for (u, io, padded witness).
        self.check_io(io)
        if len(w_padded) != self.num_vars_padded:
            raise DimensionMismatch("padded witness has the wrong length")
        pub = [_fr(u)] + [_fr(x) for x in io]
        pub += [Fr.zero()] * (self.num_vars_padded - len(pub))
        return pub + list(w_padded)

    def public_poly(self, u, io):  # Sparse MLE of the public half (u, io, 0...).
        self.check_io(io)
        return public_input_poly(self.num_rounds_y - 1, u, io)

    def _mat_vec(self, M, z):
        out = [Fr.zero()] * self.num_cons_padded
        for r, c, v in M:
            out[r] += v * z[c]
        return out

    def multiply_vec(self, z):  # (A·z, B·z, C·z), each of length num_cons_padded.
        if len(z) != self.num_cols:
            raise DimensionMismatch(f"z has {len(z)} entries, expected {self.num_cols}")
        return self._mat_vec(self.A, z), self._mat_vec(self.B, z), self._mat_vec(self.C, z)

    def is_sat_relaxed(self, u, io, w, E):  # (Az)∘(Bz) == u·(Cz) + E ?
        u = _fr(u)
        z = self.z_vector(u, io, self.pad_witness(w))
        E = self.pad_error(E)
        Az, Bz, Cz = self.multiply_vec(z)
        return all(a * b == u * c + e for a, b, c, e in zip(Az, Bz, Cz, E))

    def is_sat(self, io, w):  # (Az)∘(Bz) == Cz with z = (1, io, w) ?
        return self.is_sat_relaxed(Fr.one(), io, w, [Fr.zero()] * self.num_cons)

    def compute_eval_table_sparse(self, rx_eq):  # For each column y: Σ_x eq(rx, x)·M(x, y), for M in A, B, C.
        if len(rx_eq) != self.num_cons_padded:
            raise DimensionMismatch("row eq table has the wrong length")
        out = []
        for M in (self.A, self.B, self.C):
            evals = [Fr.zero()] * self.num_cols
            for r, c, v in M:
                evals[c] += rx_eq[r] * v
            out.append(evals)
        return tuple(out)

    def evaluate(self, rx, ry):  # (A~(rx, ry), B~(rx, ry), C~(rx, ry)) straight from the sparse entries.
        if len(rx) != self.num_rounds_x or len(ry) != self.num_rounds_y:
            raise DimensionMismatch("evaluation point does not match matrix dimensions")
        eq_rx = EqPolynomial(rx).evals()
        eq_ry = EqPolynomial(ry).evals()
        out = []
        for M in (self.A, self.B, self.C):
            acc = Fr.zero()
            for r, c, v in M:
                acc += v * eq_rx[r] * eq_ry[c]
            out.append(acc)
        return tuple(out)

    def dense_matrix_polys(self):  # Matrix MLEs over (x, y), index x·num_cols + y.
        out = []
        for M in (self.A, self.B, self.C):
            evals = [Fr.zero()] * (self.num_cons_padded * self.num_cols)
            for r, c, v in M:
                evals[r * self.num_cols + c] = v
            out.append(DensePolynomial(evals))
        return tuple(out)

    def digest(self):  # Blake2b over padded dimensions and canonical physical entries.
        h = hashlib.blake2b(digest_size=32)
        for x in (self.num_cons_padded, self.num_cols, self.num_io):
            h.update(int(x).to_bytes(8, "little"))
        for tag, M in ((b"A", self.A), (b"B", self.B), (b"C", self.C)):
            h.update(tag + len(M).to_bytes(8, "little"))
            for r, c, v in M:
                h.update(r.to_bytes(8, "little") + c.to_bytes(8, "little") + v.to_bytes())
        return h.digest()


@dataclass(frozen=True)
class RelaxedR1CSInstance:  # Committed relaxed instance (comm_W, comm_E, u, io), e.g. the output of a folding scheme.
    comm_W: object
    comm_E: object
    u: Fr
    io: tuple


@dataclass(frozen=True)
class RelaxedR1CSWitness:  # Witness W and error vector E of a relaxed instance.
    W: tuple
    E: tuple

    @classmethod
    def from_r1cs_witness(cls, shape, w):  # Trivial relaxation: u = 1, E = 0.
        if len(w) != shape.num_vars:
            raise DimensionMismatch(f"witness has {len(w)} entries, expected {shape.num_vars}")
        return cls(tuple(_fr(x) for x in w), tuple(Fr.zero() for _ in range(shape.num_cons)))


# ---------------------------------------------------------------------------
# Builder: named variables + tiny linear-combination expressions
# ---------------------------------------------------------------------------

class LC:  # Linear combination Σ coeff_i * z[col_i] + const * z[0].
    def __init__(self, terms=None, const=0):  # Store (column, coeff_int) terms + const term.
        self.terms = list(terms or [])
        self.const = int(const)

    def entries(self, row):  # Matrix entries for this LC on one constraint row.
        out = [(row, col, coeff) for col, coeff in self.terms]
        if self.const:
            out.append((row, 0, self.const))
        return out


def parse_lc(expr, columns):  # Parse sums of NAME / k*NAME / ints, with + and -.
    s = str(expr).replace(" ", "")
    if not s:
        return LC([], 0)
    if s[0] not in "+-":
        s = "+" + s
    parts = []
    start = 0
    for i in range(1, len(s)):
        if s[i] in "+-":
            parts.append(s[start:i])
            start = i
    parts.append(s[start:])
    terms = []
    const = 0
    for part in parts:
        sign = -1 if part[0] == "-" else 1
        tok = part[1:]
        if not tok:
            raise ValueError(f"dangling sign in {expr!r}")
        if "*" in tok:
            a, name = tok.split("*", 1)
            if name not in columns:
                raise KeyError(f"unknown variable: {name!r}")
            terms.append((columns[name], int(a, 0) * sign))
            continue
        if tok[0].isdigit():
            const += sign * int(tok, 0)
            continue
        if tok not in columns:
            raise KeyError(f"unknown variable: {tok!r}")
        terms.append((columns[tok], sign))
    return LC(terms, const=const)


class R1CSBuilder:  # Collect named public/witness variables and constraints a * b = c.
    def __init__(self):
        self._public = []
        self._witness = []
        self._constraints = []

    def _declare(self, bucket, names):
        for name in names:
            if not name.isidentifier():
                raise ValueError(f"invalid variable name: {name!r}")
            if name in self._public or name in self._witness:
                raise ValueError(f"variable declared twice: {name!r}")
            bucket.append(name)

    def public(self, *names):  # Declare public inputs (in order).
        self._declare(self._public, names)
        return self

    def witness(self, *names):  # Declare private witness variables (in order).
        self._declare(self._witness, names)
        return self

    def constrain(self, a, b, c):  # Add (a) * (b) = (c); each side is an LC expression.
        self._constraints.append((str(a), str(b), str(c)))
        return self

    def columns(self):  # Name -> logical column.
        cols = {name: 1 + i for i, name in enumerate(self._public)}
        cols.update({name: 1 + len(self._public) + i for i, name in enumerate(self._witness)})
        return cols

    def build(self):  # Produce the R1CSShape.
        if not self._constraints:
            raise ValueError("no constraints")
        cols = self.columns()
        A, B, C = [], [], []
        for row, (a, b, c) in enumerate(self._constraints):
            A += parse_lc(a, cols).entries(row)
            B += parse_lc(b, cols).entries(row)
            C += parse_lc(c, cols).entries(row)
        return R1CSShape(len(self._constraints), len(self._witness), len(self._public), A, B, C)

    def assign(self, values):  # (io, w) vectors from a name -> value mapping.
        missing = [n for n in self._public + self._witness if n not in values]
        if missing:
            raise KeyError(f"unassigned variables: {missing}")
        io = [_fr(values[n]) for n in self._public]
        w = [_fr(values[n]) for n in self._witness]
        return io, w


def produce_synthetic_r1cs(num_cons, num_vars, num_io, rng):  # Random satisfiable (shape, io, w).
    num_cons, num_vars, num_io = int(num_cons), int(num_vars), int(num_io)
    z = [Fr.one()] + [Fr.random(rng) for _ in range(num_io + num_vars)]
    width = len(z)
    A, B, C = [], [], []
    for i in range(num_cons):
        a_col, b_col, c_col = (rng.randrange(width) for _ in range(3))
        a_val, b_val = Fr(rng.randrange(1, 1 << 16)), Fr(rng.randrange(1, 1 << 16))
        A.append((i, a_col, a_val))
        B.append((i, b_col, b_val))
        ab = a_val * z[a_col] * b_val * z[b_col]
        if z[c_col].is_zero():
            C.append((i, 0, ab))
        else:
            C.append((i, c_col, ab / z[c_col]))
    shape = R1CSShape(num_cons, num_vars, num_io, A, B, C)
    return shape, z[1 : 1 + num_io], z[1 + num_io :]
