"""Read and write per-application GPU preferences."""

from .errors import (
    BackupFormatError,
    GpuPreferenceError,
    StoreError,
    StoreNotFoundError,
    StoreWriteError,
    ValidationError,
)
from .manager import BatchResult, RegistryManager
from .preference import LABELS, Entry, Pref
from .registry import REG_PATH, MemoryStore, PreferenceStore, WinRegistryStore

__version__ = "1.0.0"

__all__ = [
    "BackupFormatError",
    "BatchResult",
    "Entry",
    "GpuPreferenceError",
    "LABELS",
    "MemoryStore",
    "Pref",
    "PreferenceStore",
    "REG_PATH",
    "RegistryManager",
    "StoreError",
    "StoreNotFoundError",
    "StoreWriteError",
    "ValidationError",
    "WinRegistryStore",
]
