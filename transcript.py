import hashlib  # blake2b hash primitive
import secrets  # fresh prover randomness

from field import Fr  # challenges are BN254 scalars
from curve import g1_to_bytes  # canonical point encoding for absorption

class ProofTranscript:  # Fiat-Shamir transcript: a Blake2b hash chain over labeled messages.
    def __init__(self, label):  # Initialize transcript state from a protocol label.
        label_b = label.encode() if isinstance(label, str) else bytes(label)
        self.state = hashlib.blake2b(self._label_word(label_b), digest_size=32).digest()
        self.n_rounds = 0

    def copy(self):  # Independent clone (prover/verifier dry runs in tests).
        t = object.__new__(type(self))
        t.state = self.state
        t.n_rounds = self.n_rounds
        return t

    def state_hex(self):  # Return current 32-byte state as lowercase hex.
        return self.state.hex()

    @staticmethod
    def _label_word(label_b):  # Encode label as 32-byte right-padded word.
        if len(label_b) > 32:
            raise ValueError("label must be <= 32 bytes")
        return label_b + b"\x00" * (32 - len(label_b))

    @staticmethod
    def _label_with_len_word(label_b, n):  # Encode 24-byte label + u64(be) length in 32 bytes.
        if len(label_b) > 24:
            raise ValueError("label must be <= 24 bytes for length-prefixed methods")
        return label_b + b"\x00" * (24 - len(label_b)) + int(n).to_bytes(8, "big")

    def _round_tag(self):  # Encode the 32-byte round tag (zero28 || be_u32(n_rounds)).
        return b"\x00" * 28 + int(self.n_rounds).to_bytes(4, "big")

    def _absorb(self, payload):  # Update state := H(state || round_tag || payload), increment round.
        h = hashlib.blake2b(digest_size=32)
        h.update(self.state)
        h.update(self._round_tag())
        h.update(payload)
        self.state = h.digest()
        self.n_rounds += 1

    def _squeeze32(self):  # Draw 32 bytes: rand := H(state || round_tag), then state := rand.
        h = hashlib.blake2b(digest_size=32)
        h.update(self.state)
        h.update(self._round_tag())
        rand = h.digest()
        self.state = rand
        self.n_rounds += 1
        return rand

    @staticmethod
    def _b(label):
        return label.encode() if isinstance(label, str) else bytes(label)

    def append_protocol_name(self, name):  # Domain-separate a sub-protocol.
        self.append_message(b"protocol-name", self._b(name))

    def append_message(self, label, data):  # Append labeled bytes with length prefix (two absorbs).
        data_b = bytes(data)
        self._absorb(self._label_with_len_word(self._b(label), len(data_b)))
        self._absorb(data_b)

    def append_u64(self, label, x):  # Append labeled u64 (two absorbs).
        self._absorb(self._label_word(self._b(label)))
        self._absorb(int(x).to_bytes(8, "big"))

    def append_scalar(self, label, s):  # Append labeled Fr scalar (two absorbs).
        s = s if isinstance(s, Fr) else Fr(s)
        self._absorb(self._label_word(self._b(label)))
        self._absorb(s.to_bytes())

    def append_scalars(self, label, scalars):  # Append labeled list of Fr scalars (1 + N absorbs).
        scalars = list(scalars)
        self._absorb(self._label_with_len_word(self._b(label), len(scalars)))
        for s in scalars:
            self._absorb((s if isinstance(s, Fr) else Fr(s)).to_bytes())

    def append_point(self, label, P):  # Append labeled compressed G1 point (two absorbs).
        self._absorb(self._label_word(self._b(label)))
        self._absorb(g1_to_bytes(P))

    def append_points(self, label, points):  # Append labeled list of G1 points (1 + N absorbs).
        points = list(points)
        self._absorb(self._label_with_len_word(self._b(label), len(points)))
        for P in points:
            self._absorb(g1_to_bytes(P))

    def challenge_bytes(self, label, n):  # Draw n labeled bytes using ceil(n/32) squeezes.
        self._absorb(self._label_word(self._b(label)))
        out = bytearray()
        while len(out) < int(n):
            out += self._squeeze32()
        return bytes(out[: int(n)])

    def challenge_scalar(self, label):  # Draw an Fr challenge (64 bytes mod r) and absorb it back.
        c = Fr.from_bytes_mod_order(self.challenge_bytes(label, 64))
        self._absorb(c.to_bytes())
        return c

    def challenge_vector(self, label, n):  # Draw a vector of n Fr challenges.
        return [self.challenge_scalar(label) for _ in range(int(n))]

    def challenge_scalar_powers(self, label, n):  # Draw q then return [1, q, q^2, ...].
        n = int(n)
        q = self.challenge_scalar(label)
        out = [Fr.one() for _ in range(n)]
        for i in range(1, n):
            out[i] = out[i - 1] * q
        return out

class RandomTape:  # Prover-side randomness for blinding factors, derived from a seeded transcript.
    def __init__(self, label, rng=None):  # rng: optional `random.Random` for reproducible runs.
        seed = secrets.token_bytes(32) if rng is None else rng.randbytes(32)
        self.tape = ProofTranscript(label)
        self.tape.append_message(b"init_randomness", seed)

    def random_scalar(self, label):  # One uniformly random scalar.
        return self.tape.challenge_scalar(label)

    def random_vector(self, label, n):  # n uniformly random scalars.
        return self.tape.challenge_vector(label, n)
