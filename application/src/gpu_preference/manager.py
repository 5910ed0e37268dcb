import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from .errors import (
    BackupFormatError,
    GpuPreferenceError,
    StoreError,
    StoreWriteError,
    ValidationError,
)
from .log import get_logger
from .preference import Entry, Pref, normalize_path, qualify_path, same_path, validate_exe
from .registry import REG_PATH, PreferenceStore

logger = get_logger()


@dataclass
class BatchResult:
    entries: List[Entry] = field(default_factory=list)
    failures: List[Tuple[str, GpuPreferenceError]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class RegistryManager:
    """Set and list GPU preferences held in a ``PreferenceStore``."""

    def __init__(self, store: PreferenceStore, namespace: str = REG_PATH):
        self.store = store
        self.namespace = namespace

    def read_all(self) -> List[Entry]:
        out: List[Entry] = []
        for name, val in self.store.get(self.namespace).items():
            pref = Pref.from_reg_value(val)
            if pref is Pref.AUTO and val != Pref.AUTO.to_reg_value():
                logger.debug("Unrecognised value %r for %s, treating as Auto", val, name)
            out.append(Entry(exe=normalize_path(name), pref=pref))
        return out

    def list_preferences(
        self, path: str | Path | None = None, pref: Optional[Pref] = None
    ) -> List[Entry]:
        """Entries in store order, filtered by path and/or preference.

        Raises ``StoreNotFoundError`` when nothing was ever written.
        """
        entries = self.read_all()
        if path is not None:
            wanted = qualify_path(path)
            entries = [e for e in entries if same_path(e.exe, wanted)][:1]
        if pref is not None:
            entries = [e for e in entries if e.pref == pref]
        return entries

    def set_preference(self, path: str | Path, pref: Pref) -> Entry:
        exe = validate_exe(path)
        try:
            present = self.store.exists(self.namespace)
        except StoreWriteError:
            raise
        except StoreError as e:
            raise StoreWriteError(e.message, exe) from e
        if not present:
            logger.info("Creating preference store %s", self.namespace)
            self.store.create_namespace(self.namespace)
        self.store.set(self.namespace, exe, pref.to_reg_value())
        logger.info("Set %s -> %s", exe, pref.label)
        return Entry(exe=exe, pref=pref)

    def set_preferences(self, paths: Iterable[str | Path], pref: Pref) -> BatchResult:
        result = BatchResult()
        for p in paths:
            try:
                result.entries.append(self.set_preference(p, pref))
            except GpuPreferenceError as e:
                logger.warning("Skipped %s: %s", p, e)
                result.failures.append((str(p), e))
        return result

    def backup(self, to_file: str | Path) -> int:
        data = {e.exe: int(e.pref) for e in self.read_all()}
        with open(to_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=4)
        logger.info("Backed up %d entries to %s", len(data), to_file)
        return len(data)

    def restore(self, from_file: str | Path) -> BatchResult:
        with open(from_file, "r", encoding="utf-8") as f:
            data: Dict[str, int] = json.load(f)
        if not isinstance(data, dict):
            raise BackupFormatError(
                str(from_file), f"expected a JSON object of path -> code, got {type(data).__name__}"
            )
        result = BatchResult()
        for exe, code in data.items():
            try:
                pref = Pref(code)
            except (TypeError, ValueError):
                err = ValidationError(exe, f"unknown GPU preference code {code!r}", "restore")
                logger.warning("Skipped %s: %s", exe, err)
                result.failures.append((exe, err))
                continue
            single = self.set_preferences([exe], pref)
            result.entries.extend(single.entries)
            result.failures.extend(single.failures)
        return result
