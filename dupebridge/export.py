# dupebridge/export.py
"""
CSV report codec.

The report is the hand-off between a scan and a later prune run: one row per
file in a confirmed duplicate set, with a ``remove_file`` column that the user
fills in before pruning.
"""
from __future__ import annotations
import csv
import os
import tempfile
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence

from .checksums import Checksum
from .errors import ReportParseError, ReportWriteError
from .types import ChecksumIndex, FileRecord, ReportRow

LogCallback = Callable[[str], None]

CSV_DIRECTORY_COLUMN = "directory"
CSV_FILE_COLUMN = "file"
CSV_SIZE_COLUMN = "size"
CSV_SIZE_IN_BYTES_COLUMN = "size_in_bytes"
CSV_CHECKSUM_COLUMN = "checksum"
CSV_REMOVE_FILE_COLUMN = "remove_file"

CSV_HEADER = [
    CSV_DIRECTORY_COLUMN,
    CSV_FILE_COLUMN,
    CSV_SIZE_COLUMN,
    CSV_SIZE_IN_BYTES_COLUMN,
    CSV_CHECKSUM_COLUMN,
    CSV_REMOVE_FILE_COLUMN,
]
CSV_FIELD_COUNT = len(CSV_HEADER)

# Undecodable bytes in file names survive a write and read as lone surrogates.
REPORT_ENCODING = "utf-8"
REPORT_ERRORS = "surrogateescape"

_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_VALUES = {"0", "f", "F", "FALSE", "false", "False"}


def parse_bool(value: str) -> bool:
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"invalid boolean value {value!r}")


def data_row(record: FileRecord) -> List[str]:
    return [
        record.parent,
        record.name,
        record.size_hr,
        str(record.size),
        str(record.checksum),
        "",
    ]


def empty_row() -> List[str]:
    return [""] * CSV_FIELD_COUNT


def sorted_sets(index: ChecksumIndex) -> Iterator[List[FileRecord]]:
    for checksum in sorted(index, key=str):
        yield index[checksum]


def write_report(index: ChecksumIndex, filename: str, blank_line: bool = False) -> int:
    """Write ``index`` to ``filename`` and return the number of data rows.

    Rows go to a temporary file beside the target which is synced and then
    moved into place, so an existing report is replaced whole or not at all.
    """
    target = Path(filename).absolute()
    if not target.parent.is_dir():
        raise ReportWriteError("parent directory for specified CSV file to create does not exist")

    written = 0
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent))
    except OSError as exc:
        raise ReportWriteError(f"unable to create temporary file beside {target}: {exc}") from exc
    try:
        with os.fdopen(fd, "w", newline="", encoding=REPORT_ENCODING, errors=REPORT_ERRORS) as fh:
            writer = csv.writer(fh)
            writer.writerow(CSV_HEADER)
            for set_num, records in enumerate(sorted_sets(index)):
                if blank_line and set_num > 0:
                    writer.writerow(empty_row())
                for record in records:
                    writer.writerow(data_row(record))
                    written += 1
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, target)
    except (OSError, ValueError, csv.Error) as exc:
        raise ReportWriteError(f"failed to write CSV file {target}: {exc}") from exc
    finally:
        # only left behind when the replace did not happen
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
    return written


def parse_row(row: Sequence[str], row_num: int) -> ReportRow:
    if len(row) != CSV_FIELD_COUNT:
        raise ReportParseError(
            f"row {row_num}: unexpected number of fields; got {len(row)}, expected {CSV_FIELD_COUNT}",
            row_num,
        )
    fields = [field.strip() for field in row]

    if not fields[0]:
        raise ReportParseError(f"row {row_num}, field 1 has empty parent directory path", row_num, 1)
    if not fields[1]:
        raise ReportParseError(f"row {row_num}, field 2 has empty filename", row_num, 2)

    size_in_bytes = 0
    if fields[3]:
        try:
            size_in_bytes = int(fields[3])
        except ValueError as exc:
            raise ReportParseError(
                f"row {row_num}, field 4: invalid size_in_bytes {fields[3]!r}", row_num, 4
            ) from exc
        if size_in_bytes < 0:
            raise ReportParseError(f"row {row_num}, field 4: negative size_in_bytes", row_num, 4)

    # Required: the checksum is what ties a removal back to the scanned content.
    if not fields[4]:
        raise ReportParseError(f"row {row_num}, field 5 has empty checksum", row_num, 5)
    try:
        checksum = Checksum(fields[4])
    except ValueError as exc:
        raise ReportParseError(f"row {row_num}, field 5: {exc}", row_num, 5) from exc

    remove_file = False
    if fields[5]:
        try:
            remove_file = parse_bool(fields[5])
        except ValueError as exc:
            raise ReportParseError(f"row {row_num}, field 6: {exc}", row_num, 6) from exc

    return ReportRow(
        parent=fields[0],
        filename=fields[1],
        size_hr=fields[2],
        size_in_bytes=size_in_bytes,
        checksum=checksum,
        remove_file=remove_file,
        row_num=row_num,
    )


def is_blank(row: Sequence[str]) -> bool:
    return all(not field.strip() for field in row)


def read_report(
    filename: str,
    use_first_row: bool = False,
    ignore_errors: bool = False,
    log: Optional[LogCallback] = None,
    skipped: Optional[List[ReportParseError]] = None,
) -> Iterator[ReportRow]:
    """Yield parsed rows from a report, in file order.

    Malformed rows raise ``ReportParseError`` unless ``ignore_errors`` is set,
    in which case they are logged, appended to ``skipped`` and passed over.
    Data the CSV reader cannot decode or split into a record always raises.
    """
    try:
        fh = open(filename, newline="", encoding=REPORT_ENCODING, errors=REPORT_ERRORS)
    except OSError as exc:
        raise ReportParseError(f"unable to open input CSV file {filename}: {exc}") from exc

    with fh:
        reader = csv.reader(fh, skipinitialspace=True)
        row_num = 0
        while True:
            try:
                row = next(reader)
            except StopIteration:
                break
            except (csv.Error, UnicodeDecodeError) as exc:
                # the reader cannot resync after a broken record, so this ends the read
                raise ReportParseError(
                    f"row {row_num + 1}: unreadable CSV data in {filename} near line {reader.line_num}: {exc}",
                    row_num + 1,
                ) from exc
            row_num += 1
            if row_num == 1 and not use_first_row:
                if log:
                    log("[REPORT] Skipping first row in input file to avoid processing column headers")
                continue
            if is_blank(row):
                continue
            try:
                parsed = parse_row(row, row_num)
            except ReportParseError as exc:
                if not ignore_errors:
                    raise
                if log:
                    log(f"[WARN] {exc}; ignoring input row {row_num}")
                if skipped is not None:
                    skipped.append(exc)
                continue
            yield parsed
