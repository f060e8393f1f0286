from __future__ import annotations

import hashlib
import os
from pathlib import Path

import pytest

from dupebridge.checksums import Checksum, generate
from dupebridge.config import BridgeConfig, ReportConfig
from dupebridge.dedupe import (
    build_checksum_index,
    compute_summary,
    find_duplicates,
    prune_index,
    update_checksums,
    wasted_space,
)
from dupebridge.errors import DigestError, InternalConsistencyError
from dupebridge.scan import build_size_index, scan_path
from dupebridge.types import FileRecord, sort_by_mtime, total_size


def _record(path: str, size: int) -> FileRecord:
    return FileRecord(path=path, parent="/", size=size, mtime=0.0)


def _checksum(fill: str) -> Checksum:
    return Checksum(fill * 64)


def test_three_files_two_identical(tmp_path: Path) -> None:
    (tmp_path / "a.bin").write_bytes(b"A" * 100)
    (tmp_path / "b.bin").write_bytes(b"A" * 100)
    (tmp_path / "c.bin").write_bytes(b"B" * 100)

    size_index = build_size_index(scan_path(str(tmp_path)))
    prune_index(size_index, 2)
    assert list(size_index) == [100]
    assert len(size_index[100]) == 3

    cfg = BridgeConfig(report=ReportConfig(paths=[str(tmp_path)]))
    outcome = find_duplicates(cfg)

    assert len(outcome.checksum_index) == 1
    (records,) = outcome.checksum_index.values()
    assert sorted(r.name for r in records) == ["a.bin", "b.bin"]
    assert outcome.summary.total_evaluated_files == 3
    assert outcome.summary.size_match_sets == 1
    assert outcome.summary.size_match_files == 3
    assert outcome.summary.checksum_match_sets == 1
    assert outcome.summary.checksum_match_files == 2
    assert outcome.summary.duplicate_files == 1
    assert outcome.summary.wasted_space == 100


def test_recorded_checksums_match_fresh_digest(tmp_path: Path) -> None:
    for name in ("x", "y", "z"):
        (tmp_path / name).write_bytes(b"same content")

    outcome = find_duplicates(BridgeConfig(report=ReportConfig(paths=[str(tmp_path)])))

    for checksum, records in outcome.checksum_index.items():
        for record in records:
            assert generate(record.path) == checksum
            assert str(checksum) == hashlib.sha256(b"same content").hexdigest()


def test_unique_sizes_are_never_hashed(tmp_path: Path) -> None:
    (tmp_path / "a").write_bytes(b"1")
    (tmp_path / "b").write_bytes(b"22")

    size_index = build_size_index(scan_path(str(tmp_path)))
    prune_index(size_index, 2)

    assert update_checksums(size_index) == 0
    assert size_index == {}


def test_prune_index_drops_small_buckets() -> None:
    index = {
        1: [_record("/a", 1)],
        2: [_record("/b", 2), _record("/c", 2)],
        3: [_record("/d", 3), _record("/e", 3), _record("/f", 3)],
    }

    assert prune_index(index, 3) == 2
    assert list(index) == [3]


@pytest.mark.parametrize("members,size,expected", [(2, 100, 100), (3, 100, 200), (5, 7, 28)])
def test_wasted_space(members: int, size: int, expected: int) -> None:
    index = {_checksum("a"): [_record(f"/f{i}", size) for i in range(members)]}
    assert wasted_space(index) == expected


def test_empty_set_is_an_internal_fault() -> None:
    with pytest.raises(InternalConsistencyError):
        wasted_space({_checksum("a"): []})


def test_summary_from_indexes() -> None:
    size_index = {10: [_record("/a", 10), _record("/b", 10), _record("/c", 10)]}
    checksum_index = {_checksum("1"): [_record("/a", 10), _record("/b", 10)]}

    summary = compute_summary(7, size_index, checksum_index)

    assert summary.total_evaluated_files == 7
    assert summary.size_match_files == 3
    assert summary.checksum_match_files == 2
    assert summary.duplicate_files == 1
    assert summary.wasted_space == 10


def test_checksum_index_requires_digests() -> None:
    with pytest.raises(InternalConsistencyError):
        build_checksum_index({5: [_record("/a", 5)]})


def test_digest_failure_aborts_or_drops(tmp_path: Path) -> None:
    for name in ("a", "b", "c"):
        (tmp_path / name).write_bytes(b"dup!")

    size_index = build_size_index(scan_path(str(tmp_path)))
    (tmp_path / "b").unlink()

    with pytest.raises(DigestError):
        update_checksums(size_index)

    size_index = build_size_index(scan_path(str(tmp_path)))
    (tmp_path / "c").unlink()
    messages: list[str] = []
    hashed = update_checksums(size_index, ignore_errors=True, log=messages.append)

    assert hashed == 1
    assert [r.name for r in size_index[4]] == ["a"]
    assert any(str(tmp_path / "c") in m for m in messages)


def test_duplicates_threshold_applies_to_checksum_sets(tmp_path: Path) -> None:
    for name in ("a", "b"):
        (tmp_path / name).write_bytes(b"pair")
    for name in ("c", "d", "e"):
        (tmp_path / name).write_bytes(b"trio")

    cfg = BridgeConfig(report=ReportConfig(paths=[str(tmp_path)], duplicates_threshold=3))
    outcome = find_duplicates(cfg)

    assert len(outcome.checksum_index) == 1
    (records,) = outcome.checksum_index.values()
    assert sorted(r.name for r in records) == ["c", "d", "e"]
    assert outcome.summary.wasted_space == 8


def test_blake3_digests_group_duplicates(tmp_path: Path) -> None:
    (tmp_path / "a").write_bytes(b"xyz")
    (tmp_path / "b").write_bytes(b"xyz")

    outcome = find_duplicates(BridgeConfig(hash_algorithm="blake3", report=ReportConfig(paths=[str(tmp_path)])))

    (checksum,) = outcome.checksum_index
    assert str(checksum) != hashlib.sha256(b"xyz").hexdigest()
    assert generate(tmp_path / "a", "blake3") == checksum


def test_sets_are_ordered_oldest_first(tmp_path: Path) -> None:
    for name, mtime in (("a", 300), ("b", 100), ("c", 200)):
        path = tmp_path / name
        path.write_bytes(b"same")
        os.utime(path, (mtime, mtime))

    outcome = find_duplicates(BridgeConfig(report=ReportConfig(paths=[str(tmp_path)])))

    (records,) = outcome.checksum_index.values()
    assert [r.name for r in records] == ["b", "c", "a"]
    sort_by_mtime(records, newest_first=True)
    assert [r.name for r in records] == ["a", "c", "b"]
    assert total_size(records) == 12
