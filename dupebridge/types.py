from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, List, Optional

from .checksums import Checksum
from .util import byte_count_iec


@dataclass(slots=True)
class FileRecord:
    path: str
    parent: str
    size: int
    mtime: float
    checksum: Optional[Checksum] = None

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    @property
    def size_hr(self) -> str:
        return byte_count_iec(self.size)


SizeIndex = Dict[int, List[FileRecord]]
ChecksumIndex = Dict[Checksum, List[FileRecord]]


@dataclass(frozen=True, slots=True)
class DuplicateSummary:
    total_evaluated_files: int
    size_match_sets: int
    checksum_match_sets: int
    size_match_files: int
    checksum_match_files: int
    duplicate_files: int
    wasted_space: int


@dataclass(slots=True)
class ReportRow:
    parent: str
    filename: str
    size_hr: str
    size_in_bytes: int
    checksum: Checksum
    remove_file: bool = False
    row_num: int = 0

    @property
    def path(self) -> str:
        return os.path.join(self.parent, self.filename)


@dataclass(slots=True)
class ScanOutcome:
    size_index: SizeIndex
    checksum_index: ChecksumIndex
    summary: DuplicateSummary


def total_size(records: List[FileRecord]) -> int:
    return sum(record.size for record in records)


def sort_by_mtime(records: List[FileRecord], newest_first: bool = False) -> None:
    records.sort(key=lambda record: record.mtime, reverse=newest_first)
