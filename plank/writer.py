from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .constants import (
    VERSION,
    CODEC_NONE,
    CODEC_DEFLATE,
    DEFAULT_LEVEL,
    MAX_FILE_COUNT,
)
from .codec import Codec
from .encryption import EncryptionContext, KeyMaterial, SOURCE_GENERATED
from .errors import ConfigurationError
from .hashutil import digest
from .manifest import Header, ManifestRecord, build_flags


@dataclass(frozen=True)
class EncodeResult:
    data: bytes
    # Set only when encryption ran without a password or key; the only way to
    # decrypt the archive later.
    generated_key: Optional[bytes] = None

    @property
    def generated_key_hex(self) -> Optional[str]:
        return self.generated_key.hex() if self.generated_key is not None else None


def _check_inputs(files: Sequence[bytes], filenames: Sequence[str]) -> None:
    if filenames and len(filenames) != len(files):
        raise ConfigurationError(
            f"got {len(files)} files but {len(filenames)} filenames; pass one name per file or none"
        )
    if len(files) > MAX_FILE_COUNT:
        raise ConfigurationError(f"too many files: {len(files)}")
    for i, name in enumerate(filenames):
        if not isinstance(name, str):
            raise ConfigurationError(f"filename {i} must be a str, got {type(name).__name__}")
    for i, data in enumerate(files):
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise ConfigurationError(f"file {i} must be bytes-like, got {type(data).__name__}")


def encode(
    files: Sequence[bytes],
    filenames: Sequence[str] = (),
    *,
    encrypt: bool = False,
    compress: bool = False,
    digests: bool = True,
    password_digest: str = "",
    key: str = "",
    level: int = DEFAULT_LEVEL,
    verbose: bool = False,
) -> EncodeResult:
    """Build a .plank archive in memory.

    Each file goes through compress then encrypt; the manifest digest (when
    ``digests`` is set) always covers the original bytes.

    Args:
        files: File contents, in archive order.
        filenames: One name per file, or empty to store no names.
        encrypt: Encrypt every block with XChaCha20.
        compress: Deflate every block before encryption.
        digests: Record SHA-256 of each original file (verifiable flag).
        password_digest: Hex SHA-256 of a password; the key is its raw bytes.
        key: Hex key bytes, used when no password digest is given.
        level: zlib level for compression.
        verbose: Print one line per file.

    Returns:
        EncodeResult with the archive bytes and, when a key had to be
        generated, that key.

    Raises:
        ConfigurationError: On inconsistent inputs.
        KeyMaterialError: On malformed or wrong-length key text.
    """
    _check_inputs(files, filenames)

    material: Optional[KeyMaterial] = None
    encryptor: Optional[EncryptionContext] = None
    if encrypt:
        material = KeyMaterial.resolve(password_digest, key)
        encryptor = EncryptionContext(material)
    codec = Codec(CODEC_DEFLATE if compress else CODEC_NONE, level)

    header = Header(
        version=VERSION,
        flags=build_flags(compressed=compress, encrypted=encrypt, verifiable=digests),
        file_count=len(files),
    )

    manifest = bytearray()
    blocks: List[bytes] = []
    for i, data in enumerate(files):
        name = filenames[i] if filenames else None
        original = bytes(data)
        block = codec.compress(original)
        if encryptor is not None:
            block = encryptor.encrypt(block)
        rec = ManifestRecord(
            filename=name or None,
            original_size=len(original),
            stored_size=len(block),
            digest=digest(original) if digests else None,
        )
        manifest += rec.pack(digests)
        blocks.append(block)
        if verbose:
            print(f"File: {i + 1}\tItem: {name or i}\tSize: 0x{len(original):x}\tStored: 0x{len(block):x}")

    out = header.pack() + bytes(manifest) + b"".join(blocks)
    if verbose:
        print(f"Encoded {len(files)} file(s), {len(out)} bytes (flags=0x{header.flags:02x})")
    generated = material.key if material is not None and material.source == SOURCE_GENERATED else None
    return EncodeResult(data=out, generated_key=generated)
