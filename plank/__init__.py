"""
plank — a small single-file archive format.

Features:

- Packs any number of files into one ``.plank`` container with their names.
- Optional deflate compression and XChaCha20 encryption per file,
  always applied compress-then-encrypt.
- Optional SHA-256 digest of every original file, checked on request.

The binary layout is a 5-byte magic ("plank"), version, flags, file count, the
manifest (name, original size, stored size, digest per file) and the
concatenated payload blocks. See plank/constants.py and plank/manifest.py.
"""

__version__ = "0.1"

from .errors import (
    PlankError,
    FormatMismatch,
    UnsupportedVersion,
    ManifestCorrupt,
    KeyMaterialError,
    DecryptionFailure,
    CompressionStreamError,
    IntegrityMismatch,
    ConfigurationError,
)
from .hashutil import digest, password_digest_hex
from .reader import DecodedFile, DecodeResult, decode, inspect
from .writer import EncodeResult, encode

__all__ = [
    "encode",
    "decode",
    "inspect",
    "digest",
    "password_digest_hex",
    "EncodeResult",
    "DecodeResult",
    "DecodedFile",
    "PlankError",
    "FormatMismatch",
    "UnsupportedVersion",
    "ManifestCorrupt",
    "KeyMaterialError",
    "DecryptionFailure",
    "CompressionStreamError",
    "IntegrityMismatch",
    "ConfigurationError",
]
