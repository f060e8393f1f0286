from __future__ import annotations

import csv
from pathlib import Path

import pytest

from dupebridge import __version__
from dupebridge.cli import main
from dupebridge.commands import report as report_command


def _populate(root: Path) -> None:
    root.mkdir()
    (root / "a.txt").write_bytes(b"duplicate")
    (root / "b.txt").write_bytes(b"duplicate")
    (root / "c.txt").write_bytes(b"unique!")


def test_version(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])
    assert excinfo.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_no_command_prints_help() -> None:
    assert main([]) == 1


def test_report_then_prune(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    data = tmp_path / "data"
    _populate(data)
    report = tmp_path / "report.csv"

    assert main(["report", "--path", str(data), "--csvfile", str(report), "--console"]) == 0
    out = capsys.readouterr().out
    assert "Next steps" in out
    assert "Wasted space (SI units):" in out

    with report.open(newline="", encoding="utf-8") as fh:
        rows = list(csv.reader(fh))
    assert len(rows) == 3
    rows[2][5] = "true"
    flagged = Path(rows[2][0]) / rows[2][1]
    with report.open("w", newline="", encoding="utf-8") as fh:
        csv.writer(fh).writerows(rows)

    assert main(["prune", "--input-csvfile", str(report), "--dry-run"]) == 0
    assert flagged.exists()

    assert main(["prune", "--input-csvfile", str(report)]) == 0
    assert not flagged.exists()
    assert "PRUNE RESULT" in capsys.readouterr().out


def test_report_rejects_missing_arguments(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["report", "--csvfile", "r.csv"]) == 1
    assert "[ERROR]" in capsys.readouterr().out


def test_report_rejects_low_duplicates_threshold(tmp_path: Path) -> None:
    data = tmp_path / "data"
    _populate(data)

    code = main(["report", "--path", str(data), "--csvfile", str(tmp_path / "r.csv"), "--duplicates", "1"])

    assert code == 1
    assert not (tmp_path / "r.csv").exists()


def test_prune_requires_input() -> None:
    assert main(["prune", "--dry-run"]) == 1


def test_flags_override_config_file(tmp_path: Path) -> None:
    cfg_path = tmp_path / "cfg.yaml"
    cfg_path.write_text("report:\n  paths: [/srv]\n  size_threshold: 50\n", encoding="utf-8")
    args = report_command.build_parser().parse_args(
        ["--config", str(cfg_path), "--path", "/mnt", "--size", "5", "--recurse"]
    )

    cfg = report_command.config_from_args(args)

    assert cfg.report.paths == ["/srv", "/mnt"]
    assert cfg.report.size_threshold == 5
    assert cfg.report.recursive is True


def test_prune_of_modified_file_fails_and_keeps_it(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    data = tmp_path / "data"
    _populate(data)
    report = tmp_path / "report.csv"
    assert main(["report", "--path", str(data), "--csvfile", str(report)]) == 0

    with report.open(newline="", encoding="utf-8") as fh:
        rows = list(csv.reader(fh))
    for row in rows[1:]:
        row[5] = "true"
    with report.open("w", newline="", encoding="utf-8") as fh:
        csv.writer(fh).writerows(rows)
    changed = Path(rows[1][0]) / rows[1][1]
    changed.write_bytes(b"duplicatf")
    capsys.readouterr()

    assert main(["prune", "--input-csvfile", str(report)]) == 1

    out = capsys.readouterr().out
    assert "[ERROR]" in out
    assert "[ABORTED]" in out
    assert changed.read_bytes() == b"duplicatf"
    assert (data / "a.txt").exists() and (data / "b.txt").exists()
