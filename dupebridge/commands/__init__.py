"""Command registration for the dupebridge CLI."""
from __future__ import annotations

from typing import Iterable

from . import prune, report

COMMAND_MODULES: Iterable = (report, prune)

__all__ = ["COMMAND_MODULES"]
