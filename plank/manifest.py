from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .constants import (
    MAGIC,
    VERSION,
    FLAG_COMPRESSED,
    FLAG_ENCRYPTED,
    FLAG_VERIFIABLE,
    FLAG_MASK,
    HEADER_STRUCT,
    FILENAME_LEN_STRUCT,
    SIZES_STRUCT,
    MAX_FILENAME_LEN,
    DIGEST_SIZE,
)
from .errors import ConfigurationError, FormatMismatch, ManifestCorrupt, UnsupportedVersion


@dataclass(frozen=True)
class Header:
    version: int
    flags: int
    file_count: int

    @property
    def compressed(self) -> bool:
        return bool(self.flags & FLAG_COMPRESSED)

    @property
    def encrypted(self) -> bool:
        return bool(self.flags & FLAG_ENCRYPTED)

    @property
    def verifiable(self) -> bool:
        return bool(self.flags & FLAG_VERIFIABLE)

    def pack(self) -> bytes:
        return HEADER_STRUCT.pack(MAGIC, self.version, self.flags, self.file_count)


@dataclass(frozen=True)
class ManifestRecord:
    filename: Optional[str]
    original_size: int
    stored_size: int
    digest: Optional[bytes] = None

    def pack(self, verifiable: bool) -> bytes:
        name = self.filename.encode("utf-8") if self.filename else b""
        if len(name) > MAX_FILENAME_LEN:
            raise ConfigurationError(f"filename longer than {MAX_FILENAME_LEN} bytes: {self.filename[:40]!r}...")
        out = bytearray(FILENAME_LEN_STRUCT.pack(len(name)))
        out += name
        out += SIZES_STRUCT.pack(self.original_size, self.stored_size)
        if verifiable:
            if self.digest is None or len(self.digest) != DIGEST_SIZE:
                raise ConfigurationError("verifiable archives need a digest on every record")
            out += self.digest
        return bytes(out)


def build_flags(*, compressed: bool, encrypted: bool, verifiable: bool) -> int:
    flags = 0
    if compressed:
        flags |= FLAG_COMPRESSED
    if encrypted:
        flags |= FLAG_ENCRYPTED
    if verifiable:
        flags |= FLAG_VERIFIABLE
    return flags


def check_magic(buf: bytes) -> None:
    if len(buf) < len(MAGIC) or bytes(buf[: len(MAGIC)]) != MAGIC:
        raise FormatMismatch("File is not a .plank archive (bad magic)")


def parse_header(buf: bytes) -> Header:
    check_magic(buf)
    if len(buf) < HEADER_STRUCT.size:
        raise ManifestCorrupt("Header too short")
    _magic, version, flags, file_count = HEADER_STRUCT.unpack_from(buf, 0)
    if version != VERSION:
        raise UnsupportedVersion(f"Unsupported archive version {version} (expected {VERSION})")
    if flags & ~FLAG_MASK:
        raise FormatMismatch(f"Unknown header flags 0x{flags:02x}")
    return Header(version=version, flags=flags, file_count=file_count)


def _take(buf: bytes, offset: int, n: int, what: str) -> bytes:
    end = offset + n
    if end > len(buf):
        raise ManifestCorrupt(f"Manifest truncated while reading {what} at offset {offset}")
    return bytes(buf[offset:end])


def parse_manifest(buf: bytes, header: Header, offset: int = HEADER_STRUCT.size) -> Tuple[List[ManifestRecord], int]:
    """Parse ``header.file_count`` records starting at ``offset``.

    Returns (records, payload_offset).
    """
    records: List[ManifestRecord] = []
    for i in range(header.file_count):
        (name_len,) = FILENAME_LEN_STRUCT.unpack(_take(buf, offset, FILENAME_LEN_STRUCT.size, f"record {i} name length"))
        offset += FILENAME_LEN_STRUCT.size
        raw_name = _take(buf, offset, name_len, f"record {i} name")
        offset += name_len
        try:
            filename = raw_name.decode("utf-8") if name_len else None
        except UnicodeDecodeError as exc:
            raise ManifestCorrupt(f"Record {i} filename is not valid UTF-8") from exc
        original_size, stored_size = SIZES_STRUCT.unpack(_take(buf, offset, SIZES_STRUCT.size, f"record {i} sizes"))
        if original_size > sys.maxsize or stored_size > sys.maxsize:
            raise ManifestCorrupt(f"Record {i} sizes exceed what this platform can address")
        offset += SIZES_STRUCT.size
        rec_digest = None
        if header.verifiable:
            rec_digest = _take(buf, offset, DIGEST_SIZE, f"record {i} digest")
            offset += DIGEST_SIZE
        records.append(ManifestRecord(filename, original_size, stored_size, rec_digest))
    return records, offset


def check_payload_bounds(records: List[ManifestRecord], payload_len: int) -> None:
    total = sum(r.stored_size for r in records)
    if total > payload_len:
        raise ManifestCorrupt(f"Payload truncated: manifest describes {total} bytes, {payload_len} present")
    if total < payload_len:
        raise ManifestCorrupt(f"Trailing data: manifest describes {total} bytes, {payload_len} present")
