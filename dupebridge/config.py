from __future__ import annotations
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator
import yaml

from .errors import ConfigError

SUPPORTED_HASH_ALGORITHMS = {"sha256", "blake3"}

class ReportConfig(BaseModel):
    paths: List[str] = Field(default_factory=list)
    recursive: bool = False
    size_threshold: int = 1  # bytes; smaller files are never evaluated
    duplicates_threshold: int = 2
    csv_file: Optional[str] = None
    blank_line: bool = False
    console: bool = False

    @field_validator("size_threshold")
    @classmethod
    def _check_size_threshold(cls, value: int) -> int:
        if value < 0:
            raise ValueError("0 bytes is the minimum size for evaluated files")
        return value

    @field_validator("duplicates_threshold")
    @classmethod
    def _check_duplicates_threshold(cls, value: int) -> int:
        if value < 2:
            raise ValueError("2 is the minimum duplicates number for evaluated files")
        return value

class PruneConfig(BaseModel):
    input_csv_file: Optional[str] = None
    backup_dir: Optional[str] = None
    dry_run: bool = False
    use_first_row: bool = False
    blank_line: bool = False
    console: bool = False

class BridgeConfig(BaseModel):
    ignore_errors: bool = False
    hash_algorithm: str = "sha256"
    hash_chunk_bytes: int = 1024 * 1024  # 1 MB streaming reads
    report: ReportConfig = Field(default_factory=ReportConfig)
    prune: PruneConfig = Field(default_factory=PruneConfig)

    @field_validator("hash_algorithm")
    @classmethod
    def _normalize_algorithm(cls, value: str) -> str:
        normalized = value.lower().strip()
        if normalized not in SUPPORTED_HASH_ALGORITHMS:
            raise ValueError(f"hash_algorithm must be one of {sorted(SUPPORTED_HASH_ALGORITHMS)}")
        return normalized

    @field_validator("hash_chunk_bytes")
    @classmethod
    def _check_chunk(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("hash_chunk_bytes must be positive")
        return value

def load_config(path: Optional[Path] = None) -> BridgeConfig:
    if path is None:
        return BridgeConfig()
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Unable to parse config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    try:
        return BridgeConfig(**data)
    except ValueError as exc:
        raise ConfigError(f"Invalid config file {path}: {exc}") from exc

def validate_for_report(cfg: BridgeConfig) -> None:
    if not cfg.report.paths:
        raise ConfigError("one or more paths not provided")
    csv_file = (cfg.report.csv_file or "").strip()
    if not csv_file:
        raise ConfigError("missing fully-qualified path to CSV file to create")
    if not Path(csv_file).absolute().parent.is_dir():
        raise ConfigError("parent directory for specified CSV file to create does not exist")

def validate_for_prune(cfg: BridgeConfig) -> None:
    if not (cfg.prune.input_csv_file or "").strip():
        raise ConfigError("required input CSV file to process not specified")
