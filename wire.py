"""Canonical byte encoding for proofs and commitments.

Layout rules (little-endian throughout, arkworks-style):

- ``u64``: 8 bytes; vector lengths are ``u64`` prefixes.
- scalar: 32 bytes, canonical (``< r``).
- G1 point: 32 bytes, compressed (x plus sign/infinity flags in the top bits).

Every container type exposes ``write(w)`` and ``read(r, ...)``; decoding a
top-level object must consume the input exactly.
"""

from curve import G1_NUM_BYTES, g1_from_bytes, g1_to_bytes  # compressed G1 codec
from field import Fr  # BN254 scalar field

MAX_VEC_LEN = 1 << 24  # sanity cap on decoded vector lengths


class SerializationError(Exception):  # Raised on malformed proof bytes.
    pass


class Writer:  # Append-only byte sink.
    def __init__(self):
        self.buf = bytearray()

    def u8(self, x):
        self.buf.append(int(x) & 0xFF)

    def u64(self, x):
        self.buf += int(x).to_bytes(8, "little")

    def scalar(self, s):
        self.buf += (s if isinstance(s, Fr) else Fr(s)).to_bytes()

    def point(self, P):
        self.buf += g1_to_bytes(P)

    def message(self, data):  # u64 length prefix then raw bytes.
        data = bytes(data)
        self.u64(len(data))
        self.buf += data

    def vec(self, items, write_item):  # u64 length prefix then each item.
        items = list(items)
        self.u64(len(items))
        for x in items:
            write_item(x)

    def scalars(self, items):
        self.vec(items, self.scalar)

    def points(self, items):
        self.vec(items, self.point)

    def getvalue(self):
        return bytes(self.buf)


class Reader:  # Minimal little-endian reader.
    def __init__(self, data):
        self.data = bytes(data)
        self.i = 0

    def remaining(self):
        return len(self.data) - self.i

    def take(self, n):
        n = int(n)
        if n < 0 or self.i + n > len(self.data):
            raise SerializationError("unexpected end of input")
        out = self.data[self.i : self.i + n]
        self.i += n
        return out

    def u8(self):
        return self.take(1)[0]

    def u64(self):
        return int.from_bytes(self.take(8), "little")

    def scalar(self):
        try:
            return Fr.from_bytes(self.take(Fr.NUM_BYTES))
        except ValueError as e:
            raise SerializationError(str(e)) from e

    def point(self):
        try:
            return g1_from_bytes(self.take(G1_NUM_BYTES))
        except ValueError as e:
            raise SerializationError(str(e)) from e

    def message(self):
        n = self.u64()
        if n > MAX_VEC_LEN:
            raise SerializationError(f"message length {n} exceeds limit")
        return self.take(n)

    def vec(self, read_item):
        n = self.u64()
        if n > MAX_VEC_LEN:
            raise SerializationError(f"vector length {n} exceeds limit")
        return [read_item() for _ in range(n)]

    def scalars(self):
        return self.vec(self.scalar)

    def points(self):
        return self.vec(self.point)

    def finish(self):  # Reject trailing bytes.
        if self.remaining():
            raise SerializationError(f"{self.remaining()} trailing bytes")


def encode(obj):  # Serialize any object with a `write(w)` method.
    w = Writer()
    obj.write(w)
    return w.getvalue()


def decode(data, read):  # Run `read(reader)` over the whole input.
    r = Reader(data)
    out = read(r)
    r.finish()
    return out
