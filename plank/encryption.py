from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from Cryptodome.Cipher import ChaCha20

from .constants import KEY_SIZE, NONCE_SIZE
from .errors import ConfigurationError, DecryptionFailure, KeyMaterialError
from .hashutil import digest, key_from_hex


SOURCE_DERIVED = "derived"
SOURCE_EXPLICIT = "explicit"
SOURCE_GENERATED = "generated"


@dataclass(frozen=True)
class KeyMaterial:
    key: bytes
    source: str

    def __post_init__(self):
        if len(self.key) != KEY_SIZE:
            raise KeyMaterialError(f"key must be {KEY_SIZE} bytes, got {len(self.key)}")

    @property
    def hex(self) -> str:
        return self.key.hex()

    @classmethod
    def from_password(cls, password: str) -> "KeyMaterial":
        return cls(digest(password.encode("utf-8")), SOURCE_DERIVED)

    @classmethod
    def from_hex(cls, text: str, source: str = SOURCE_EXPLICIT) -> "KeyMaterial":
        try:
            raw = key_from_hex(text)
        except ValueError as exc:
            raise KeyMaterialError(str(exc)) from exc
        return cls(raw, source)

    @classmethod
    def generate(cls) -> "KeyMaterial":
        return cls(os.urandom(KEY_SIZE), SOURCE_GENERATED)

    @classmethod
    def resolve(cls, password_digest: str = "", key: str = "") -> "KeyMaterial":
        """Pick the key for an encrypting encode.

        ``password_digest`` is the hex SHA-256 of a password (see
        :func:`plank.hashutil.password_digest_hex`) and ``key`` is raw key
        bytes as hex. With neither, a random key is generated; the caller
        must surface it since nothing else can decrypt the archive.
        """
        if password_digest and key:
            raise ConfigurationError("pass either a password digest or a key, not both")
        if password_digest:
            return cls.from_hex(password_digest, SOURCE_DERIVED)
        if key:
            return cls.from_hex(key, SOURCE_EXPLICIT)
        return cls.generate()

    @classmethod
    def for_decode(cls, key: Optional[str]) -> "KeyMaterial":
        if not key:
            raise KeyMaterialError("archive is encrypted; a key or password is required")
        return cls.from_hex(key)


class EncryptionContext:
    """Per-block XChaCha20 using a fresh random 24-byte nonce.

    Block layout: nonce[24] || ciphertext. There is no authentication tag; a
    wrong key or a damaged block decrypts to garbage, which the manifest
    digest (or the inflate stage) rejects.
    """

    def __init__(self, material: KeyMaterial):
        self.material = material

    def encrypt(self, plaintext: bytes) -> bytes:
        nonce = os.urandom(NONCE_SIZE)
        cipher = ChaCha20.new(key=self.material.key, nonce=nonce)
        return nonce + cipher.encrypt(plaintext)

    def decrypt(self, payload: bytes) -> bytes:
        if len(payload) < NONCE_SIZE:
            raise DecryptionFailure("Encrypted block too short")
        nonce = bytes(payload[:NONCE_SIZE])
        cipher = ChaCha20.new(key=self.material.key, nonce=nonce)
        return cipher.decrypt(bytes(payload[NONCE_SIZE:]))

    def overhead(self) -> int:
        return NONCE_SIZE
