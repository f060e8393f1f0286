from __future__ import annotations
from pathlib import Path
import hashlib
from typing import Any, Union

import blake3

PathLike = Union[str, Path]


def _stream_into(hasher: Any, path: PathLike, chunk_size: int) -> str:
    # one sequential pass over the whole file
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def sha256_file(path: PathLike, chunk_size: int = 1024 * 1024) -> str:
    return _stream_into(hashlib.sha256(), path, chunk_size)


def blake3_file(path: PathLike, chunk_size: int = 1024 * 1024) -> str:
    return _stream_into(blake3.blake3(), path, chunk_size)


def file_digest(path: PathLike, algorithm: str = "sha256", chunk_size: int = 1024 * 1024) -> str:
    if algorithm == "blake3":
        return blake3_file(path, chunk_size)
    if algorithm == "sha256":
        return sha256_file(path, chunk_size)
    raise ValueError(f"Unsupported hash algorithm: {algorithm}")


def _byte_count(b: int, unit: int, prefixes: str, suffix: str) -> str:
    if b < unit:
        return f"{b} B"
    div, exp = unit, 0
    n = b // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{b / div:.1f} {prefixes[exp]}{suffix}"


def byte_count_iec(b: int) -> str:
    """Human-readable size in binary units, e.g. ``1.5 MiB``."""
    return _byte_count(b, 1024, "KMGTPE", "iB")


def byte_count_si(b: int) -> str:
    """Human-readable size in decimal units, e.g. ``1.5 MB``."""
    return _byte_count(b, 1000, "kMGTPE", "B")
