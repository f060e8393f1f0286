"""Console rendering of summaries, duplicate sets and report rows."""
from __future__ import annotations

import sys
from typing import Iterable, List, Sequence

from .export import sorted_sets
from .types import ChecksumIndex, DuplicateSummary, ReportRow
from .util import byte_count_iec, byte_count_si

HEADERS = ["Directory", "File", "Size", "Checksum", "Remove"]


def echo(message: str = "") -> None:
    """Print a line, escaping file names that are not valid in the stream encoding."""
    try:
        print(message)
    except UnicodeEncodeError:
        encoding = getattr(sys.stdout, "encoding", None) or "utf-8"
        print(message.encode(encoding, "backslashreplace").decode(encoding))


def _print_table(rows: Sequence[Sequence[str]], breaks: Iterable[int] = ()) -> None:
    widths = [len(h) for h in HEADERS]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))
    fmt = "    ".join(f"{{:<{w}}}" for w in widths)
    echo(fmt.format(*HEADERS).rstrip())
    break_at = set(breaks)
    for i, row in enumerate(rows):
        if i in break_at:
            echo()
        echo(fmt.format(*row).rstrip())
    echo()


def print_summary(summary: DuplicateSummary) -> None:
    print("\n" + "=" * 70)
    print("DUPLICATE FILES SUMMARY")
    print("=" * 70)
    print(f"Evaluated files:                      {summary.total_evaluated_files:>10,}")
    print(f"Sets of files with identical size:    {summary.size_match_sets:>10,}")
    print(f"Sets of files with identical checksum:{summary.checksum_match_sets:>10,}")
    print(f"Files with identical size:            {summary.size_match_files:>10,}")
    print(f"Files with identical checksum:        {summary.checksum_match_files:>10,}")
    print(f"Duplicate files:                      {summary.duplicate_files:>10,}")
    print(f"Wasted space:                         {byte_count_iec(summary.wasted_space):>10}")
    print(f"Wasted space (SI units):              {byte_count_si(summary.wasted_space):>10}")
    print("=" * 70)


def print_file_matches(index: ChecksumIndex, blank_line: bool = False) -> None:
    rows: List[List[str]] = []
    breaks: List[int] = []
    for records in sorted_sets(index):
        if blank_line and rows:
            breaks.append(len(rows))
        for record in records:
            rows.append([record.parent, record.name, record.size_hr, str(record.checksum), "false"])
    _print_table(rows, breaks)


def print_report_rows(entries: Sequence[ReportRow], blank_line: bool = False) -> None:
    rows: List[List[str]] = []
    breaks: List[int] = []
    last_checksum = None
    for entry in entries:
        if blank_line and rows and entry.checksum != last_checksum:
            breaks.append(len(rows))
        rows.append([entry.parent, entry.filename, entry.size_hr, str(entry.checksum), str(entry.remove_file).lower()])
        last_checksum = entry.checksum
    _print_table(rows, breaks)
