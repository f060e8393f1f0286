# dupebridge/dedupe.py
"""
Duplicate detection using two stages:
1. Exact byte size grouping as a cheap pre-filter
2. Full-file checksums for files sharing a size, regrouped by digest
"""
from __future__ import annotations
import time
from typing import Callable, Dict, List, Optional, TypeVar

from . import checksums
from .config import BridgeConfig
from .console import echo
from .errors import DigestError, InternalConsistencyError
from .scan import build_size_index, scan_paths
from .types import (
    ChecksumIndex,
    DuplicateSummary,
    FileRecord,
    ScanOutcome,
    SizeIndex,
    sort_by_mtime,
    total_size,
)
from .util import byte_count_iec

LogCallback = Callable[[str], None]

K = TypeVar("K")


def prune_index(index: Dict[K, List[FileRecord]], threshold: int) -> int:
    """Drop every group with fewer than ``threshold`` members, in place.

    Returns the number of groups removed.
    """
    small = [key for key, records in index.items() if len(records) < threshold]
    for key in small:
        del index[key]
    return len(small)


def total_files(index: Dict[K, List[FileRecord]]) -> int:
    return sum(len(records) for records in index.values())


def duplicate_files(index: ChecksumIndex) -> int:
    # one original per set is not a duplicate
    return sum(len(records) - 1 for records in index.values())


def wasted_space(index: ChecksumIndex) -> int:
    wasted = 0
    for checksum, records in index.items():
        if not records:
            raise InternalConsistencyError(f"empty duplicate file set for checksum {checksum}")
        wasted += total_size(records) - records[0].size
    return wasted


def update_checksums(
    index: SizeIndex,
    algorithm: str = "sha256",
    ignore_errors: bool = False,
    chunk_size: int = 1024 * 1024,
    log: Optional[LogCallback] = None,
) -> int:
    """Digest every record in ``index``, storing the checksum on the record.

    Records that cannot be read are dropped from the index when errors are
    ignored; otherwise the first failure is raised. Returns the number of
    records hashed.
    """
    hashed = 0
    for size in list(index):
        kept: List[FileRecord] = []
        for record in index[size]:
            try:
                record.checksum = checksums.generate(record.path, algorithm, chunk_size)
            except DigestError as exc:
                if not ignore_errors:
                    raise
                if log:
                    log(f"[WARN] {exc}; dropping {record.path}")
                continue
            kept.append(record)
            hashed += 1
        index[size] = kept
    return hashed


def build_checksum_index(index: SizeIndex) -> ChecksumIndex:
    checksum_index: ChecksumIndex = {}
    for records in index.values():
        for record in records:
            if record.checksum is None:
                raise InternalConsistencyError(f"record without checksum: {record.path}")
            checksum_index.setdefault(record.checksum, []).append(record)
    return checksum_index


def compute_summary(total_evaluated: int, size_index: SizeIndex, checksum_index: ChecksumIndex) -> DuplicateSummary:
    return DuplicateSummary(
        total_evaluated_files=total_evaluated,
        size_match_sets=len(size_index),
        checksum_match_sets=len(checksum_index),
        size_match_files=total_files(size_index),
        checksum_match_files=total_files(checksum_index),
        duplicate_files=duplicate_files(checksum_index),
        wasted_space=wasted_space(checksum_index),
    )


def find_duplicates(cfg: BridgeConfig, log_cb: Optional[LogCallback] = None) -> ScanOutcome:
    """Scan configured paths and return the confirmed duplicate sets."""

    def emit_log(message: str) -> None:
        echo(message)
        if not log_cb:
            return
        try:
            log_cb(message)
        except Exception:
            pass

    report_cfg = cfg.report
    threshold = report_cfg.duplicates_threshold
    emit_log(
        f"[SCAN] Starting scan: paths={len(report_cfg.paths)}, recursive={report_cfg.recursive}, "
        f"min_size={report_cfg.size_threshold:,} bytes, min_group={threshold} files"
    )
    start_time = time.time()

    size_index = build_size_index(
        scan_paths(
            report_cfg.paths,
            recursive=report_cfg.recursive,
            size_threshold=report_cfg.size_threshold,
            ignore_errors=cfg.ignore_errors,
            log=emit_log,
        )
    )
    total_evaluated = total_files(size_index)
    dropped = prune_index(size_index, threshold)
    emit_log(
        f"[SCAN] Evaluated {total_evaluated:,} files; {len(size_index):,} size groups kept, "
        f"{dropped:,} dropped"
    )

    candidates = total_files(size_index)
    emit_log(f"[HASH] Computing {cfg.hash_algorithm} for {candidates:,} candidate files")
    hashed = update_checksums(
        size_index,
        algorithm=cfg.hash_algorithm,
        ignore_errors=cfg.ignore_errors,
        chunk_size=cfg.hash_chunk_bytes,
        log=emit_log,
    )
    if hashed != candidates:
        emit_log(f"[WARN] {candidates - hashed:,} files could not be hashed and were skipped")

    checksum_index = build_checksum_index(size_index)
    prune_index(checksum_index, threshold)
    for records in checksum_index.values():
        # oldest copy first, so the likely original leads each set
        sort_by_mtime(records)

    summary = compute_summary(total_evaluated, size_index, checksum_index)
    elapsed = time.time() - start_time
    emit_log(
        f"[DONE] {summary.checksum_match_sets:,} duplicate sets, {summary.duplicate_files:,} duplicate files, "
        f"{byte_count_iec(summary.wasted_space)} wasted ({elapsed:.1f}s)"
    )
    return ScanOutcome(size_index=size_index, checksum_index=checksum_index, summary=summary)
