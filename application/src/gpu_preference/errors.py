"""Exception types raised by the preference store and its operations."""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    INVALID_PATH = "E_INVALID_PATH"
    INVALID_BACKUP = "E_INVALID_BACKUP"
    STORE_READ = "E_STORE_READ"
    STORE_WRITE = "E_STORE_WRITE"
    STORE_NOT_FOUND = "E_STORE_NOT_FOUND"


class GpuPreferenceError(Exception):
    """Base class for every failure surfaced to callers."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        path: Optional[str] = None,
        operation: str = "",
    ):
        self.code = code
        self.message = message
        self.path = path
        self.operation = operation
        super().__init__(self._format())

    def _format(self) -> str:
        parts = []
        if self.operation:
            parts.append(f"{self.operation}:")
        parts.append(self.message)
        if self.path:
            parts.append(f"({self.path})")
        return " ".join(parts)

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "message": self.message,
            "path": self.path,
            "operation": self.operation,
        }


class ValidationError(GpuPreferenceError):
    def __init__(self, path: str, message: str, operation: str = "set"):
        super().__init__(ErrorCode.INVALID_PATH, message, path, operation)


class StoreError(GpuPreferenceError):
    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        operation: str = "read",
        code: ErrorCode = ErrorCode.STORE_READ,
    ):
        super().__init__(code, message, path, operation)


class StoreWriteError(StoreError):
    def __init__(self, message: str, path: Optional[str] = None, operation: str = "set"):
        super().__init__(message, path, operation, ErrorCode.STORE_WRITE)


class StoreNotFoundError(StoreError):
    def __init__(self, namespace: str, operation: str = "list"):
        super().__init__(
            "preference store does not exist",
            namespace,
            operation,
            ErrorCode.STORE_NOT_FOUND,
        )
        self.namespace = namespace


class BackupFormatError(GpuPreferenceError):
    def __init__(self, path: str, message: str):
        super().__init__(ErrorCode.INVALID_BACKUP, message, path, "restore")
