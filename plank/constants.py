import struct


# Magic and version
MAGIC = b"plank"  # 5 bytes: 0x70 0x6c 0x61 0x6e 0x6b
VERSION = 1

# Header flags
FLAG_COMPRESSED = 1 << 0
FLAG_ENCRYPTED = 1 << 1
FLAG_VERIFIABLE = 1 << 2
FLAG_MASK = FLAG_COMPRESSED | FLAG_ENCRYPTED | FLAG_VERIFIABLE


# Fixed header (little endian): magic[5], version u8, flags u8, file_count u32
HEADER_STRUCT = struct.Struct("<5sBBI")

# Manifest record fields around the variable-length filename
FILENAME_LEN_STRUCT = struct.Struct("<H")
SIZES_STRUCT = struct.Struct("<QQ")  # original_size, stored_size

MAX_FILENAME_LEN = 0xFFFF
MAX_FILE_COUNT = 0xFFFFFFFF

DIGEST_SIZE = 32  # SHA-256


# Codec IDs (0=none, 1=deflate/zlib)
CODEC_NONE = 0
CODEC_DEFLATE = 1

DEFAULT_LEVEL = 6


# XChaCha20
KEY_SIZE = 32
NONCE_SIZE = 24
