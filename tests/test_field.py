import pathlib  # locate repo root
import random  # deterministic PRNG for test cases
import sys  # adjust import path for local modules
import unittest  # unit test framework

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))  # allow importing local modules

from field import Fq, Fr, batch_inverse  # BN254 fields + batched inversion


class FieldTests(unittest.TestCase):  # Tests for Montgomery field arithmetic and encoding.
    def check_field(self, cls):
        p = cls.MODULUS
        rng = random.Random(0)
        for _ in range(64):
            a = rng.randrange(0, p)
            b = rng.randrange(1, p)
            x, y = cls(a), cls(b)
            self.assertEqual(int(x + y), (a + b) % p)
            self.assertEqual(int(x - y), (a - b) % p)
            self.assertEqual(int(x * y), (a * b) % p)
            self.assertEqual(int(x / y), (a * pow(b, -1, p)) % p)
            self.assertEqual(int(x**7), pow(a, 7, p))
            self.assertEqual(int(-x), (-a) % p)
            self.assertEqual(int(3 - x), (3 - a) % p)
            if a:
                self.assertEqual(int(x * x.inv()), 1)
            else:
                with self.assertRaises(ZeroDivisionError):
                    x.inv()

        self.assertEqual(int(cls.zero()), 0)
        self.assertEqual(int(cls.one()), 1)
        self.assertTrue(cls.zero().is_zero())

    def test_fq(self):  # Fq arithmetic against integers mod p.
        self.check_field(Fq)

    def test_fr(self):  # Fr arithmetic against integers mod r.
        self.check_field(Fr)

    def test_bytes_roundtrip_little_endian(self):  # 32-byte little-endian encoding.
        rng = random.Random(1)
        for _ in range(16):
            x = Fr.random(rng)
            data = x.to_bytes()
            self.assertEqual(len(data), 32)
            self.assertEqual(int.from_bytes(data, "little"), int(x))
            self.assertEqual(Fr.from_bytes(data), x)

    def test_from_bytes_rejects_non_canonical(self):  # Values >= modulus are rejected.
        with self.assertRaises(ValueError):
            Fr.from_bytes(Fr.MODULUS.to_bytes(32, "little"))
        with self.assertRaises(ValueError):
            Fr.from_bytes(b"\x01" * 31)
        self.assertEqual(Fr.from_bytes_mod_order(Fr.MODULUS.to_bytes(32, "little")), Fr.zero())

    def test_hash_and_eq(self):  # Equal elements hash equally.
        self.assertEqual(Fr(5), 5)
        self.assertEqual(len({Fr(5), Fr(5), Fr(6)}), 2)
        self.assertNotEqual(Fr(5), Fr(6))

    def test_batch_inverse(self):  # Matches element-wise inversion.
        rng = random.Random(2)
        xs = [Fr(rng.randrange(1, Fr.MODULUS)) for _ in range(10)]
        invs = batch_inverse(xs)
        for x, y in zip(xs, invs):
            self.assertEqual(x * y, Fr.one())
        self.assertEqual(batch_inverse([]), [])


if __name__ == "__main__":
    unittest.main()
