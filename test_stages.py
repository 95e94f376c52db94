from __future__ import annotations

import argparse
import hashlib
import os
import sys
import unittest
import zlib

from plank.codec import Codec
from plank.config import Options
from plank.constants import CODEC_NONE, CODEC_DEFLATE, HEADER_STRUCT, KEY_SIZE
from plank.encryption import EncryptionContext, KeyMaterial, SOURCE_DERIVED, SOURCE_EXPLICIT, SOURCE_GENERATED
from plank.errors import (
    CompressionStreamError,
    ConfigurationError,
    DecryptionFailure,
    KeyMaterialError,
)
from plank.hashutil import digest, digest_hex, key_from_hex, password_digest_hex
from plank.manifest import Header, ManifestRecord, build_flags, parse_header, parse_manifest


class CodecTests(unittest.TestCase):
    def test_deflate_roundtrip(self):
        c = Codec(CODEC_DEFLATE)
        for data in (b"", b"a", os.urandom(1000), b"xyz" * 10000):
            self.assertEqual(c.decompress(c.compress(data)), data)
            self.assertEqual(c.decompress(c.compress(data), expected_size=len(data)), data)

    def test_none_is_identity(self):
        c = Codec(CODEC_NONE)
        self.assertEqual(c.compress(b"abc"), b"abc")
        self.assertEqual(c.decompress(b"abc"), b"abc")

    def test_garbage(self):
        with self.assertRaises(CompressionStreamError):
            Codec(CODEC_DEFLATE).decompress(b"definitely not deflate")

    def test_truncated_stream(self):
        blob = zlib.compress(b"abc" * 100)
        with self.assertRaises(CompressionStreamError):
            Codec(CODEC_DEFLATE).decompress(blob[:-3])

    def test_trailing_data(self):
        with self.assertRaises(CompressionStreamError):
            Codec(CODEC_DEFLATE).decompress(zlib.compress(b"abc") + b"tail")

    def test_output_bounded_by_expected_size(self):
        blob = zlib.compress(b"a" * 100_000)
        with self.assertRaises(CompressionStreamError):
            Codec(CODEC_DEFLATE).decompress(blob, expected_size=10)

    def test_expected_size_out_of_range(self):
        with self.assertRaises(CompressionStreamError):
            Codec(CODEC_DEFLATE).decompress(zlib.compress(b"a"), expected_size=sys.maxsize)

    def test_unknown_codec(self):
        with self.assertRaises(ConfigurationError):
            Codec(7)


class DigestTests(unittest.TestCase):
    def test_sha256(self):
        self.assertEqual(digest(b"abc"), hashlib.sha256(b"abc").digest())
        self.assertEqual(digest_hex(b"abc"), hashlib.sha256(b"abc").hexdigest())
        self.assertEqual(len(digest(b"")), 32)

    def test_password_digest_contract(self):
        hex_text = password_digest_hex("secret")
        self.assertEqual(hex_text, hashlib.sha256(b"secret").hexdigest())
        self.assertEqual(key_from_hex(hex_text), hashlib.sha256(b"secret").digest())

    def test_key_from_hex_rejects_garbage(self):
        with self.assertRaises(ValueError):
            key_from_hex("xyz")


class KeyMaterialTests(unittest.TestCase):
    def test_derived_matches_digest_hex(self):
        a = KeyMaterial.from_password("secret")
        b = KeyMaterial.resolve(password_digest=password_digest_hex("secret"))
        self.assertEqual(a.key, b.key)
        self.assertEqual(b.source, SOURCE_DERIVED)

    def test_resolve_explicit_and_generated(self):
        raw = os.urandom(KEY_SIZE)
        self.assertEqual(KeyMaterial.resolve(key=raw.hex()).source, SOURCE_EXPLICIT)
        gen = KeyMaterial.resolve()
        self.assertEqual(gen.source, SOURCE_GENERATED)
        self.assertEqual(len(gen.key), KEY_SIZE)
        self.assertNotEqual(gen.key, KeyMaterial.resolve().key)

    def test_resolve_both(self):
        with self.assertRaises(ConfigurationError):
            KeyMaterial.resolve(password_digest="00" * 32, key="11" * 32)

    def test_wrong_length(self):
        with self.assertRaises(KeyMaterialError):
            KeyMaterial(b"short", SOURCE_EXPLICIT)

    def test_for_decode_requires_key(self):
        with self.assertRaises(KeyMaterialError):
            KeyMaterial.for_decode("")
        with self.assertRaises(KeyMaterialError):
            KeyMaterial.for_decode(None)


class EncryptionTests(unittest.TestCase):
    def setUp(self):
        self.ctx = EncryptionContext(KeyMaterial.from_password("secret"))

    def test_roundtrip(self):
        for data in (b"", b"x", os.urandom(5000)):
            blob = self.ctx.encrypt(data)
            self.assertEqual(len(blob), len(data) + self.ctx.overhead())
            self.assertEqual(self.ctx.decrypt(blob), data)

    def test_block_layout(self):
        blob = self.ctx.encrypt(b"payload")
        self.assertEqual(self.ctx.overhead(), 24)
        self.assertEqual(len(blob), 24 + len(b"payload"))

    def test_wrong_key(self):
        blob = self.ctx.encrypt(b"payload")
        other = EncryptionContext(KeyMaterial.from_password("wrong"))
        garbled = other.decrypt(blob)
        self.assertEqual(len(garbled), len(b"payload"))
        self.assertNotEqual(garbled, b"payload")

    def test_tampered_block(self):
        blob = bytearray(self.ctx.encrypt(b"payload"))
        blob[30] ^= 0x01
        # No tag: a ciphertext bit flip flips the same plaintext bit.
        self.assertEqual(self.ctx.decrypt(bytes(blob)), b"payloa" + bytes([ord("d") ^ 0x01]))

    def test_short_block(self):
        with self.assertRaises(DecryptionFailure):
            self.ctx.decrypt(b"\x00" * 23)


class ManifestTests(unittest.TestCase):
    def test_header_roundtrip(self):
        flags = build_flags(compressed=True, encrypted=False, verifiable=True)
        h = Header(version=1, flags=flags, file_count=3)
        packed = h.pack()
        self.assertEqual(len(packed), HEADER_STRUCT.size)
        parsed = parse_header(packed)
        self.assertEqual(parsed, h)
        self.assertTrue(parsed.compressed)
        self.assertFalse(parsed.encrypted)
        self.assertTrue(parsed.verifiable)

    def test_records_parse_back(self):
        h = Header(version=1, flags=build_flags(compressed=False, encrypted=False, verifiable=True), file_count=2)
        recs = [
            ManifestRecord("a.txt", 10, 10, digest(b"a")),
            ManifestRecord(None, 0, 0, digest(b"")),
        ]
        buf = h.pack() + b"".join(r.pack(True) for r in recs)
        parsed, payload_offset = parse_manifest(buf, parse_header(buf))
        self.assertEqual(parsed, recs)
        self.assertEqual(payload_offset, len(buf))

    def test_record_without_digest_on_verifiable(self):
        with self.assertRaises(ConfigurationError):
            ManifestRecord("a", 1, 1, None).pack(True)


class OptionsTests(unittest.TestCase):
    def test_password_becomes_digest_and_implies_encrypt(self):
        ns = argparse.Namespace(password="secret", key=None, compress=True, verbose=False)
        opts = Options.from_args(ns)
        self.assertTrue(opts.encrypt)
        self.assertEqual(opts.password_digest, password_digest_hex("secret"))
        self.assertEqual(opts.decode_key, password_digest_hex("secret"))

    def test_password_and_key_conflict(self):
        ns = argparse.Namespace(password="secret", key="00" * 32)
        with self.assertRaises(ConfigurationError):
            Options.from_args(ns)

    def test_frozen(self):
        opts = Options()
        with self.assertRaises(AttributeError):
            opts.compress = True  # type: ignore[misc]

    def test_bad_exists_policy(self):
        with self.assertRaises(ConfigurationError):
            Options(exists="clobber")


if __name__ == "__main__":
    unittest.main()
