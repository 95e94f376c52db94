from __future__ import annotations

import binascii
import hashlib
import hmac


def digest(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def digest_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def digests_equal(a: bytes, b: bytes) -> bool:
    return hmac.compare_digest(a, b)


def password_digest_hex(password: str) -> str:
    """Hex text of SHA-256 over the UTF-8 password.

    This is the key exchange contract between both sides of the format: the
    packer and the unpacker hash the identical password with the identical
    function and pass the resulting hex text to the codec, which hex-decodes
    it back into the 32 raw key bytes. The hex text itself is never used as
    key material.
    """
    return digest_hex(password.encode("utf-8"))


def key_from_hex(text: str) -> bytes:
    """Decode hex key text into raw bytes.

    Raises:
        ValueError: If the text is not valid hex.
    """
    try:
        return binascii.unhexlify(text.strip())
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"key is not valid hex: {exc}") from exc
