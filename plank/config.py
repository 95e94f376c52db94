from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import Optional

from .constants import DEFAULT_LEVEL
from .errors import ConfigurationError
from .hashutil import password_digest_hex


EXISTS_POLICIES = ("overwrite", "skip", "rename", "fail")


@dataclass(frozen=True)
class Options:
    """Settings for one pack/unpack run, built once and passed down as values."""

    compress: bool = False
    encrypt: bool = False
    verify: bool = False
    digests: bool = True
    password_digest: str = ""
    key: str = ""
    output: Optional[str] = None
    outdir: str = "."
    exists: str = "rename"
    level: int = DEFAULT_LEVEL
    verbose: bool = False

    def __post_init__(self):
        if self.password_digest and self.key:
            raise ConfigurationError("use either --password or --key, not both")
        if self.exists not in EXISTS_POLICIES:
            raise ConfigurationError(f"unknown exists policy: {self.exists}")

    @property
    def decode_key(self) -> str:
        """Hex key for decoding; the password digest doubles as the key."""
        return self.password_digest or self.key

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "Options":
        password = getattr(args, "password", None)
        key = getattr(args, "key", None) or ""
        digest = password_digest_hex(password) if password else ""
        return cls(
            compress=bool(getattr(args, "compress", False)),
            # A password or key only makes sense with encryption.
            encrypt=bool(getattr(args, "encrypt", False) or password or key),
            verify=bool(getattr(args, "verify", False)),
            digests=not getattr(args, "no_digests", False),
            password_digest=digest,
            key=key,
            output=getattr(args, "output", None),
            outdir=getattr(args, "outdir", ".") or ".",
            exists=getattr(args, "exists", "rename") or "rename",
            level=getattr(args, "level", DEFAULT_LEVEL),
            verbose=bool(getattr(args, "verbose", False)),
        )
