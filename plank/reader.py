from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .codec import Codec
from .constants import CODEC_NONE, CODEC_DEFLATE
from .encryption import EncryptionContext, KeyMaterial
from .errors import CompressionStreamError, IntegrityMismatch, ManifestCorrupt
from .hashutil import digest, digests_equal
from .manifest import Header, ManifestRecord, check_payload_bounds, parse_header, parse_manifest


@dataclass(frozen=True)
class DecodedFile:
    filename: str
    data: bytes
    digest_verified: bool = False


@dataclass
class DecodeResult:
    files: List[DecodedFile] = field(default_factory=list)
    filenames_present: bool = False

    @property
    def data(self) -> List[bytes]:
        return [f.data for f in self.files]

    @property
    def filenames(self) -> Optional[List[str]]:
        """Stored names, or None when the archive carries none."""
        if not self.filenames_present:
            return None
        return [f.filename for f in self.files]


@dataclass(frozen=True)
class ArchiveInfo:
    header: Header
    records: List[ManifestRecord]
    payload_offset: int
    payload_len: int

    def block_offsets(self) -> List[int]:
        """Absolute archive offset of each record's payload block."""
        offsets = []
        pos = self.payload_offset
        for rec in self.records:
            offsets.append(pos)
            pos += rec.stored_size
        return offsets


def inspect(archive: bytes) -> ArchiveInfo:
    """Validate the header and manifest without touching the payload blocks."""
    buf = memoryview(archive)
    header = parse_header(buf)
    records, payload_offset = parse_manifest(buf, header)
    payload_len = len(buf) - payload_offset
    check_payload_bounds(records, payload_len)
    return ArchiveInfo(header=header, records=records, payload_offset=payload_offset, payload_len=payload_len)


def decode(archive: bytes, *, verbose: bool = False, verify: bool = False, key: str = "") -> DecodeResult:
    """Restore every file from a .plank archive.

    Blocks are processed in manifest order: decrypt, decompress, then
    (when ``verify`` is set and the archive carries digests) compare the
    SHA-256 of the restored bytes against the stored digest.

    Args:
        archive: The complete archive bytes.
        verbose: Print header details and one line per file.
        verify: Check stored digests.
        key: Hex key; required when the archive is encrypted.

    Raises:
        FormatMismatch: Bad magic, version or flags.
        ManifestCorrupt: Lengths inconsistent with the available bytes.
        KeyMaterialError: Missing or malformed key for an encrypted archive.
        DecryptionFailure: Encrypted block shorter than its nonce.
        CompressionStreamError: Damaged deflate block (without digest checks).
        IntegrityMismatch: Restored bytes do not match their digest, or a
            block fails to inflate while digests are checked. This is also
            the usual symptom of a wrong key.
    """
    info = inspect(archive)
    header = info.header
    if verbose:
        print(
            f"Version: {header.version}\tFlags: 0x{header.flags:02x} "
            f"(compressed={header.compressed} encrypted={header.encrypted} verifiable={header.verifiable})\t"
            f"Files: {header.file_count}"
        )

    decryptor: Optional[EncryptionContext] = None
    if header.encrypted:
        decryptor = EncryptionContext(KeyMaterial.for_decode(key))
    elif key and verbose:
        print("Archive is not encrypted; ignoring key")
    codec = Codec(CODEC_DEFLATE if header.compressed else CODEC_NONE)
    check_digests = verify and header.verifiable
    if verify and not header.verifiable and verbose:
        print("Archive carries no digests; skipping verification")

    buf = memoryview(archive)
    pos = info.payload_offset
    result = DecodeResult(filenames_present=any(r.filename for r in info.records))
    for i, rec in enumerate(info.records):
        block = buf[pos : pos + rec.stored_size]
        pos += rec.stored_size
        if decryptor is not None:
            block = decryptor.decrypt(block)
        try:
            data = codec.decompress(block, expected_size=rec.original_size)
        except CompressionStreamError as exc:
            # With digests checked, a block that will not inflate is a mismatch.
            if check_digests:
                raise IntegrityMismatch(i, rec.filename) from exc
            raise
        if len(data) != rec.original_size:
            raise ManifestCorrupt(
                f"Record {i} restored to {len(data)} bytes, manifest says {rec.original_size}"
            )
        verified = False
        if check_digests:
            if not digests_equal(digest(data), rec.digest):
                raise IntegrityMismatch(i, rec.filename)
            verified = True
        name = rec.filename if rec.filename else str(i)
        result.files.append(DecodedFile(filename=name, data=data, digest_verified=verified))
        if verbose:
            status = " verified" if verified else ""
            print(f"File: {i + 1}\tItem: {name}\tSize: 0x{len(data):x}{status}")
    return result
