from typing import Optional


class PlankError(Exception):
    """Base class for plank-specific errors."""


# Container identity
class FormatMismatch(PlankError):
    pass


class UnsupportedVersion(FormatMismatch):
    pass


# Bounds/consistency
class ManifestCorrupt(PlankError):
    pass


# Pipeline stages
class KeyMaterialError(PlankError):
    pass


class DecryptionFailure(PlankError):
    pass


class CompressionStreamError(PlankError):
    pass


class IntegrityMismatch(PlankError):
    def __init__(self, index: int, filename: Optional[str] = None):
        self.index = index
        self.filename = filename
        label = filename if filename else str(index)
        super().__init__(f"Digest mismatch for file {index} ({label})")


# Caller input
class ConfigurationError(PlankError):
    pass
