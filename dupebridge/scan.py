# dupebridge/scan.py
"""
Path scanning and size indexing.

Files are emitted lazily as FileRecord objects (checksum unset) and folded
into a size index, the cheap first stage of duplicate detection.
"""
from __future__ import annotations
import os
from typing import Callable, Iterable, Iterator, List, Optional

from .errors import TraversalError
from .types import FileRecord, SizeIndex

LogCallback = Callable[[str], None]


def _noop_log(message: str) -> None:
    pass


def _handle_error(exc: OSError, ignore_errors: bool, log: LogCallback) -> None:
    if not ignore_errors:
        raise TraversalError(str(exc)) from exc
    log(f"[WARN] Skipping {exc.filename or '?'}: {exc.strerror or exc}")


def _record_for(entry: os.DirEntry, parent: str) -> FileRecord:
    st = entry.stat(follow_symlinks=False)
    return FileRecord(path=entry.path, parent=parent, size=st.st_size, mtime=st.st_mtime)


def _sorted_entries(directory: str) -> List[os.DirEntry]:
    with os.scandir(directory) as it:
        return sorted(it, key=lambda entry: entry.name)


def _walk(
    directory: str,
    size_threshold: int,
    ignore_errors: bool,
    log: LogCallback,
) -> Iterator[FileRecord]:
    # Depth-first, lexical order; directories are descended in place.
    try:
        entries = _sorted_entries(directory)
    except OSError as exc:
        _handle_error(exc, ignore_errors, log)
        return
    for entry in entries:
        try:
            if entry.is_dir(follow_symlinks=False):
                yield from _walk(entry.path, size_threshold, ignore_errors, log)
                continue
            if not entry.is_file(follow_symlinks=False):
                continue
            record = _record_for(entry, directory)
        except OSError as exc:
            _handle_error(exc, ignore_errors, log)
            continue
        if record.size < size_threshold:
            continue
        yield record


def scan_path(
    root: str,
    recursive: bool = False,
    size_threshold: int = 1,
    ignore_errors: bool = False,
    log: Optional[LogCallback] = None,
) -> Iterator[FileRecord]:
    """Yield every regular file under ``root`` at or above ``size_threshold``."""
    log = log or _noop_log
    if not os.path.isdir(root):
        exc = FileNotFoundError(2, "provided path does not exist or is not a directory", root)
        _handle_error(exc, ignore_errors, log)
        return
    root = os.path.abspath(root)
    if recursive:
        yield from _walk(root, size_threshold, ignore_errors, log)
        return

    try:
        entries = _sorted_entries(root)
    except OSError as exc:
        _handle_error(exc, ignore_errors, log)
        return
    for entry in entries:
        try:
            if not entry.is_file(follow_symlinks=False):
                continue
            record = _record_for(entry, root)
        except OSError as exc:
            _handle_error(exc, ignore_errors, log)
            continue
        if record.size < size_threshold:
            continue
        yield record


def scan_paths(
    roots: Iterable[str],
    recursive: bool = False,
    size_threshold: int = 1,
    ignore_errors: bool = False,
    log: Optional[LogCallback] = None,
) -> Iterator[FileRecord]:
    for root in roots:
        if log:
            log(f"[SCAN] scanning root: {root} (recursive={recursive})")
        yield from scan_path(root, recursive, size_threshold, ignore_errors, log)


def build_size_index(records: Iterable[FileRecord]) -> SizeIndex:
    index: SizeIndex = {}
    for record in records:
        index.setdefault(record.size, []).append(record)
    return index


def merge_size_indexes(*indexes: SizeIndex) -> SizeIndex:
    merged: SizeIndex = {}
    for index in indexes:
        for size, records in index.items():
            merged.setdefault(size, []).extend(records)
    return merged
