from __future__ import annotations

from typing import Optional

import zlib

from .constants import CODEC_NONE, CODEC_DEFLATE, DEFAULT_LEVEL
from .errors import CompressionStreamError, ConfigurationError


class Codec:
    def __init__(self, codec_id: int, level: Optional[int] = None):
        if codec_id not in (CODEC_NONE, CODEC_DEFLATE):
            raise ConfigurationError(f"unsupported codec id: {codec_id}")
        if level is not None and not (0 <= level <= 9):
            raise ConfigurationError(f"compression level must be 0..9, got {level}")
        self.codec_id = codec_id
        self.level = level

    def compress(self, data: bytes) -> bytes:
        if self.codec_id == CODEC_NONE:
            return bytes(data)
        return zlib.compress(data, self.level if self.level is not None else DEFAULT_LEVEL)

    def decompress(self, data: bytes, expected_size: Optional[int] = None) -> bytes:
        """Inflate one block.

        When ``expected_size`` is given, output is capped at one byte past it so
        a hostile block cannot expand without bound.
        """
        if self.codec_id == CODEC_NONE:
            return bytes(data)
        d = zlib.decompressobj()
        try:
            if expected_size is None:
                out = d.decompress(data)
            else:
                out = d.decompress(data, expected_size + 1)
        except zlib.error as e:
            raise CompressionStreamError(f"deflate stream is corrupt: {e}") from e
        except OverflowError as e:
            raise CompressionStreamError(f"recorded size {expected_size} is out of range") from e
        if expected_size is not None and len(out) > expected_size:
            raise CompressionStreamError("deflate stream inflates past its recorded size")
        if not d.eof:
            raise CompressionStreamError("deflate stream is truncated")
        if d.unused_data:
            raise CompressionStreamError("trailing bytes after deflate stream")
        return out
