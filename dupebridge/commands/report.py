"""CLI command for scanning paths and writing a duplicate files report."""
from __future__ import annotations

import argparse
from argparse import _SubParsersAction
from pathlib import Path
from typing import Optional, Sequence

from ..config import BridgeConfig, load_config, validate_for_report
from ..console import echo, print_file_matches, print_summary
from ..dedupe import find_duplicates
from ..errors import BridgeError
from ..export import CSV_REMOVE_FILE_COLUMN, write_report


def _configure_parser(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="Optional YAML configuration file; flags override its values")
    parser.add_argument("--path", action="append", help="Path to process (may repeat)")
    parser.add_argument("--recurse", action="store_true", help="Perform recursive search into subdirectories per provided path")
    parser.add_argument("--size", type=int, help="File size limit (in bytes) for evaluation; smaller files are skipped")
    parser.add_argument("--duplicates", type=int, help="Number of files of the same size needed before checksums are computed")
    parser.add_argument("--csvfile", help="Fully-qualified path to the CSV report to generate")
    parser.add_argument("--blank-line", action="store_true", help="Add a blank line between sets of matching files")
    parser.add_argument("--console", action="store_true", help="Dump (approximate) CSV file equivalent to console")
    parser.add_argument("--ignore-errors", action="store_true", help="Skip unreadable paths and files instead of aborting")
    parser.add_argument("--hash-algorithm", choices=["sha256", "blake3"], help="Checksum algorithm (default: sha256)")


def add_parser(subparsers: _SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "report",
        help="Scan paths and write a CSV report of duplicate files",
        description="Group files by size, confirm duplicates by checksum and write a CSV report for review.",
    )
    _configure_parser(parser)
    parser.set_defaults(handler=run_from_args)
    return parser


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog or "dupebridge report", description="Scan paths and write a CSV report of duplicate files")
    _configure_parser(parser)
    return parser


def config_from_args(args: argparse.Namespace) -> BridgeConfig:
    cfg = load_config(Path(args.config) if args.config else None)
    if args.path:
        cfg.report.paths.extend(args.path)
    if args.recurse:
        cfg.report.recursive = True
    if args.size is not None:
        cfg.report.size_threshold = args.size
    if args.duplicates is not None:
        cfg.report.duplicates_threshold = args.duplicates
    if args.csvfile:
        cfg.report.csv_file = args.csvfile
    if args.blank_line:
        cfg.report.blank_line = True
    if args.console:
        cfg.report.console = True
    if args.ignore_errors:
        cfg.ignore_errors = True
    if args.hash_algorithm:
        cfg.hash_algorithm = args.hash_algorithm
    # re-run field validation over the merged values
    return BridgeConfig.model_validate(cfg.model_dump())


def run_from_args(args: argparse.Namespace) -> int:
    try:
        cfg = config_from_args(args)
        validate_for_report(cfg)
        outcome = find_duplicates(cfg)
        if cfg.report.console:
            print_file_matches(outcome.checksum_index, cfg.report.blank_line)
        print_summary(outcome.summary)
        written = write_report(outcome.checksum_index, cfg.report.csv_file or "", cfg.report.blank_line)
    except (BridgeError, ValueError) as exc:
        echo(f"[ERROR] {exc}")
        return 1

    print(f"[OK] CSV report written to {cfg.report.csv_file} ({written} rows)")
    print("\nNext steps:\n")
    print(f"* Open {cfg.report.csv_file!r}")
    print(f"* Fill in the {CSV_REMOVE_FILE_COLUMN!r} field with \"true\" for any file that you wish to remove")
    print("* Run \"dupebridge prune -h\" for a quick list of applicable options")
    return 0


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return run_from_args(args)


__all__ = ["add_parser", "build_parser", "config_from_args", "run_cli", "run_from_args"]
