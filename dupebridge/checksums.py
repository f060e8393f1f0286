"""Content checksums used to confirm duplicates and guard removals."""
from __future__ import annotations

import string
from dataclasses import dataclass

from .errors import ChecksumMismatchError, DigestError
from .util import PathLike, file_digest

CHECKSUM_HEX_LENGTH = 64
_HEX_DIGITS = set(string.hexdigits)


@dataclass(frozen=True)
class Checksum:
    """A hex digest that only compares equal to other ``Checksum`` values.

    Both supported algorithms (SHA-256 and BLAKE3) produce 32-byte digests, so
    the value is always 64 lowercase hex characters.
    """

    value: str

    def __post_init__(self) -> None:
        token = self.value.strip().lower()
        if len(token) != CHECKSUM_HEX_LENGTH:
            raise ValueError(f"checksum must be {CHECKSUM_HEX_LENGTH} hex characters, got {len(token)}")
        if not set(token) <= _HEX_DIGITS:
            raise ValueError("checksum is not valid hex")
        object.__setattr__(self, "value", token)

    def __str__(self) -> str:
        return self.value

    def verify(self, path: PathLike, algorithm: str = "sha256", chunk_size: int = 1024 * 1024) -> None:
        current = generate(path, algorithm, chunk_size)
        if current != self:
            raise ChecksumMismatchError(
                f"checksum mismatch, file likely modified; got {current}, expected {self}"
            )


def generate(path: PathLike, algorithm: str = "sha256", chunk_size: int = 1024 * 1024) -> Checksum:
    try:
        return Checksum(file_digest(path, algorithm, chunk_size))
    except OSError as exc:
        raise DigestError(f"unable to checksum {path}: {exc}") from exc
