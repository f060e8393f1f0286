# dupebridge/prune.py
"""
Verified pruning of files flagged in an edited report.

Every row is re-checked against the live filesystem before anything is
touched: the directory and file must still exist and the file content must
still match the checksum recorded at scan time. Only rows that pass and carry
``remove_file=true`` are (optionally) backed up and then removed.
"""
from __future__ import annotations
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Any, Callable, Dict, List, Optional, Tuple

from .config import BridgeConfig
from .console import echo, print_report_rows
from .errors import (
    BackupError,
    BridgeError,
    ChecksumMismatchError,
    DigestError,
    RemovalError,
    ReportParseError,
    ValidationError,
)
from .export import read_report
from .types import ReportRow
from .util import PathLike, byte_count_iec

LogCallback = Callable[[str], None]

BACKUP_DIR_MODE = 0o700


@dataclass
class PlannedAction:
    action: str
    source: str
    destination: Optional[str] = None
    status: str = "pending"
    error: Optional[str] = None


@dataclass
class PruneResult:
    dry_run: bool = False
    rows_parsed: int = 0
    rows_skipped: int = 0
    rows_rejected: int = 0
    rows_accepted: int = 0
    files_flagged: int = 0
    files_backed_up: int = 0
    files_removed: int = 0
    files_failed: int = 0
    bytes_reclaimed: int = 0
    actions: List[PlannedAction] = field(default_factory=list)
    rejected: List[Tuple[int, str]] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "dry_run": self.dry_run,
            "rows_parsed": self.rows_parsed,
            "rows_skipped": self.rows_skipped,
            "rows_rejected": self.rows_rejected,
            "rows_accepted": self.rows_accepted,
            "files_flagged": self.files_flagged,
            "files_backed_up": self.files_backed_up,
            "files_removed": self.files_removed,
            "files_failed": self.files_failed,
            "bytes_reclaimed": self.bytes_reclaimed,
        }


def validate_row(row: ReportRow, algorithm: str = "sha256", chunk_size: int = 1024 * 1024) -> None:
    """Reject rows whose directory, file or content no longer match the report."""
    if not os.path.isdir(row.parent):
        raise ValidationError(
            f"row {row.row_num}, field 1 has invalid parent directory path: {row.parent!r}", row.row_num
        )
    if not os.path.isfile(row.path):
        raise ValidationError(f"row {row.row_num} has invalid path to file: {row.path!r}", row.row_num)
    try:
        row.checksum.verify(row.path, algorithm, chunk_size)
    except ChecksumMismatchError as exc:
        raise ChecksumMismatchError(
            f"row {row.row_num}: checksum validation failed for {row.path!r}: {exc}", row.row_num
        ) from exc
    except DigestError as exc:
        raise ValidationError(f"row {row.row_num}: {exc}", row.row_num) from exc


def update_size_info(row: ReportRow) -> None:
    if row.size_in_bytes == 0:
        try:
            row.size_in_bytes = os.stat(row.path).st_size
        except OSError as exc:
            raise ValidationError(
                f"row {row.row_num}: unable to stat {row.path!r} to determine size in bytes: {exc}", row.row_num
            ) from exc
    if not row.size_hr:
        row.size_hr = byte_count_iec(row.size_in_bytes)


def backup_target(path: PathLike, backup_root: PathLike) -> Path:
    """Mirror ``path`` beneath ``backup_root``, minus any drive or root anchor.

    ``/srv/a/b.txt`` under ``/backup`` becomes ``/backup/srv/a/b.txt``;
    ``C:\\a\\b.txt`` becomes ``<backup>\\a\\b.txt``.
    """
    parts = PurePath(os.path.abspath(path)).parts
    return Path(backup_root).joinpath(*parts[1:])


def backup_file(path: PathLike, backup_root: PathLike) -> Path:
    source = Path(os.path.abspath(path))
    if not source.is_file():
        raise BackupError(f"file {str(source)!r} does not exist or is not a regular file")
    root = Path(backup_root)
    if not root.is_dir():
        raise BackupError(f"backup directory {str(root)!r} does not exist or is not a directory")

    target = backup_target(source, root)
    try:
        target.parent.mkdir(parents=True, exist_ok=True, mode=BACKUP_DIR_MODE)
    except OSError as exc:
        raise BackupError(f"failed to create backup path {str(target.parent)!r} for {str(source)!r}: {exc}") from exc

    try:
        dst = open(target, "xb")
    except FileExistsError as exc:
        raise BackupError(f"backup target {str(target)!r} already exists; refusing to overwrite") from exc
    except OSError as exc:
        raise BackupError(f"unable to create backup file {str(target)!r}: {exc}") from exc

    try:
        with dst, open(source, "rb") as src:
            shutil.copyfileobj(src, dst)
            dst.flush()
            os.fsync(dst.fileno())
    except OSError as exc:
        try:
            target.unlink()
        except OSError:
            pass
        raise BackupError(f"failed to copy {str(source)!r} to {str(target)!r}: {exc}") from exc
    return target


def remove_file(path: PathLike) -> None:
    try:
        os.remove(path)
    except OSError as exc:
        raise RemovalError(f"error encountered while removing {str(path)!r}: {exc}") from exc


def prune_report(cfg: BridgeConfig, log_cb: Optional[LogCallback] = None) -> PruneResult:
    """Validate the rows of ``cfg.prune.input_csv_file`` and act on flagged ones.

    Raises the first error encountered unless ``cfg.ignore_errors`` is set.
    The tally is logged whether the run completes or aborts.
    """

    def emit_log(message: str) -> None:
        echo(message)
        if not log_cb:
            return
        try:
            log_cb(message)
        except Exception:
            pass

    prune_cfg = cfg.prune
    ignore_errors = cfg.ignore_errors
    input_csv = prune_cfg.input_csv_file or ""
    result = PruneResult(dry_run=prune_cfg.dry_run)
    skipped: List[ReportParseError] = []
    aborted = False

    emit_log(
        f"[PRUNE] Reading {input_csv} (dry_run={prune_cfg.dry_run}, ignore_errors={ignore_errors}, "
        f"backup_dir={prune_cfg.backup_dir or '-'})"
    )
    try:
        accepted: List[ReportRow] = []
        rows = read_report(
            input_csv,
            use_first_row=prune_cfg.use_first_row,
            ignore_errors=ignore_errors,
            log=emit_log,
            skipped=skipped,
        )
        for row in rows:
            result.rows_parsed += 1
            try:
                validate_row(row, cfg.hash_algorithm, cfg.hash_chunk_bytes)
                update_size_info(row)
            except ValidationError as exc:
                result.rows_rejected += 1
                result.rejected.append((row.row_num, str(exc)))
                emit_log(f"[PRUNE][REJECT] {exc}")
                if not ignore_errors:
                    raise
                emit_log(f"[PRUNE] ignore_errors set, ignoring input row {row.row_num}")
                continue
            accepted.append(row)
        result.rows_accepted = len(accepted)

        if prune_cfg.console:
            print_report_rows(accepted, prune_cfg.blank_line)

        flagged = [row for row in accepted if row.remove_file]
        result.files_flagged = len(flagged)
        if not flagged:
            emit_log(f"[PRUNE] 0 entries out of {len(accepted)} marked for removal in {input_csv}")
            emit_log("[PRUNE] Nothing to do")
            return result

        emit_log(f"[PRUNE] Found {len(flagged)} files to remove in {input_csv}")
        if prune_cfg.dry_run:
            _simulate(flagged, prune_cfg.backup_dir, result, emit_log)
            emit_log("[PRUNE] Dry-run enabled, no files removed")
            return result

        _execute(flagged, prune_cfg.backup_dir, ignore_errors, result, emit_log)
        return result
    except BridgeError:
        aborted = True
        raise
    finally:
        result.rows_skipped = len(skipped)
        status = "ABORTED" if aborted else "DONE"
        emit_log(
            f"[{status}] rows parsed={result.rows_parsed}, skipped={result.rows_skipped}, "
            f"rejected={result.rows_rejected}, flagged={result.files_flagged}, "
            f"backed up={result.files_backed_up}, removed={result.files_removed}, failed={result.files_failed}"
        )


def _simulate(
    flagged: List[ReportRow],
    backup_dir: Optional[str],
    result: PruneResult,
    emit_log: LogCallback,
) -> None:
    if backup_dir and not os.path.isdir(backup_dir):
        emit_log(f"[WARN] backup directory {backup_dir!r} does not exist; a real run would abort")
    for row in flagged:
        if backup_dir:
            destination = str(backup_target(row.path, backup_dir))
            result.actions.append(PlannedAction("backup", row.path, destination, status="would-backup"))
            emit_log(f"[PRUNE] Would back up {row.path} to {destination}")
        result.actions.append(PlannedAction("remove", row.path, status="would-remove"))
        emit_log(f"[PRUNE] Would remove {row.path} ({row.size_hr})")


def _execute(
    flagged: List[ReportRow],
    backup_dir: Optional[str],
    ignore_errors: bool,
    result: PruneResult,
    emit_log: LogCallback,
) -> None:
    if backup_dir:
        if not os.path.isdir(backup_dir):
            raise BackupError(f"backup directory {backup_dir!r} specified, but does not exist")
    else:
        emit_log("[PRUNE] backup directory not set, not backing up files")

    for row in flagged:
        if backup_dir:
            action = PlannedAction("backup", row.path)
            result.actions.append(action)
            try:
                destination = backup_file(row.path, backup_dir)
            except BackupError as exc:
                action.status = "failed"
                action.error = str(exc)
                result.files_failed += 1
                emit_log(f"[PRUNE][ERROR] {exc}")
                if not ignore_errors:
                    raise
                emit_log(f"[PRUNE] ignore_errors set, leaving {row.path} in place")
                continue
            action.destination = str(destination)
            action.status = "backed-up"
            result.files_backed_up += 1
            emit_log(f"[PRUNE] Backed up {row.path} to {destination}")

        action = PlannedAction("remove", row.path)
        result.actions.append(action)
        try:
            remove_file(row.path)
        except RemovalError as exc:
            action.status = "failed"
            action.error = str(exc)
            result.files_failed += 1
            emit_log(f"[PRUNE][ERROR] {exc}")
            if not ignore_errors:
                raise
            emit_log("[PRUNE] ignore_errors set, ignoring failed file removal")
            continue
        action.status = "removed"
        result.files_removed += 1
        result.bytes_reclaimed += row.size_in_bytes
        emit_log(f"[PRUNE] Removed {row.path}")
