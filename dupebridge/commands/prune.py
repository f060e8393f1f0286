"""CLI command for pruning files flagged in a previously generated report."""
from __future__ import annotations

import argparse
from argparse import _SubParsersAction
from pathlib import Path
from typing import Optional, Sequence

from ..config import BridgeConfig, load_config, validate_for_prune
from ..console import echo
from ..errors import BridgeError
from ..prune import prune_report
from ..util import byte_count_iec


def _configure_parser(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="Optional YAML configuration file; flags override its values")
    parser.add_argument("--input-csvfile", help="CSV report (edited) to use for file removal decisions")
    parser.add_argument("--backup-dir", help="Existing directory to copy files into before removal, mirroring their original paths")
    parser.add_argument("--dry-run", action="store_true", help="Don't remove files; show what would have been done")
    parser.add_argument("--use-first-row", action="store_true", help="Parse the first row of the input file instead of skipping it as a header")
    parser.add_argument("--blank-line", action="store_true", help="Add a blank line between sets of matching files in console output")
    parser.add_argument("--console", action="store_true", help="Dump validated CSV rows to console")
    parser.add_argument("--ignore-errors", action="store_true", help="Skip bad rows and failed removals instead of aborting")
    parser.add_argument("--hash-algorithm", choices=["sha256", "blake3"], help="Checksum algorithm used when the report was generated")


def add_parser(subparsers: _SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "prune",
        help="Remove files flagged in a duplicate files report",
        description="Re-verify every report row against the filesystem, then back up and remove flagged files.",
    )
    _configure_parser(parser)
    parser.set_defaults(handler=run_from_args)
    return parser


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog or "dupebridge prune", description="Remove files flagged in a duplicate files report")
    _configure_parser(parser)
    return parser


def config_from_args(args: argparse.Namespace) -> BridgeConfig:
    cfg = load_config(Path(args.config) if args.config else None)
    if args.input_csvfile:
        cfg.prune.input_csv_file = args.input_csvfile
    if args.backup_dir:
        cfg.prune.backup_dir = args.backup_dir
    if args.dry_run:
        cfg.prune.dry_run = True
    if args.use_first_row:
        cfg.prune.use_first_row = True
    if args.blank_line:
        cfg.prune.blank_line = True
    if args.console:
        cfg.prune.console = True
    if args.ignore_errors:
        cfg.ignore_errors = True
    if args.hash_algorithm:
        cfg.hash_algorithm = args.hash_algorithm
    return BridgeConfig.model_validate(cfg.model_dump())


def run_from_args(args: argparse.Namespace) -> int:
    try:
        cfg = config_from_args(args)
        validate_for_prune(cfg)
        result = prune_report(cfg)
    except (BridgeError, ValueError) as exc:
        echo(f"[ERROR] {exc}")
        return 1

    print("\n" + "=" * 70)
    print("PRUNE (DRY RUN)" if result.dry_run else "PRUNE RESULT")
    print("=" * 70)
    print(f"Rows parsed:             {result.rows_parsed:>10,}")
    print(f"Rows skipped:            {result.rows_skipped:>10,}")
    print(f"Rows rejected:           {result.rows_rejected:>10,}")
    print(f"Files flagged:           {result.files_flagged:>10,}")
    print(f"Files backed up:         {result.files_backed_up:>10,}")
    print(f"Files removed:           {result.files_removed:>10,}")
    print(f"Failures:                {result.files_failed:>10,}")
    print(f"Space reclaimed:         {byte_count_iec(result.bytes_reclaimed):>10}")
    print("=" * 70)
    return 0


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return run_from_args(args)


__all__ = ["add_parser", "build_parser", "config_from_args", "run_cli", "run_from_args"]
