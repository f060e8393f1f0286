"""Duplicate file reporting and verified pruning."""

__version__ = "0.3.0"
