"""Exception types raised by the scan, report and prune pipelines."""
from __future__ import annotations


class BridgeError(RuntimeError):
    pass


class ConfigError(BridgeError):
    pass


class TraversalError(BridgeError):
    pass


class DigestError(BridgeError):
    pass


class ReportWriteError(BridgeError):
    pass


class ReportParseError(BridgeError):
    def __init__(self, message: str, row_num: int = 0, field: int = 0):
        super().__init__(message)
        self.row_num = row_num
        self.field = field


class ValidationError(BridgeError):
    def __init__(self, message: str, row_num: int = 0):
        super().__init__(message)
        self.row_num = row_num


class ChecksumMismatchError(ValidationError):
    pass


class BackupError(BridgeError):
    pass


class RemovalError(BridgeError):
    pass


class InternalConsistencyError(BridgeError):
    pass
