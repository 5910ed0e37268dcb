import os
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Dict

from .errors import ValidationError

EXE_SUFFIX = ".exe"


def normalize_path(p: str | Path) -> str:
    p = os.path.normpath(str(p))
    if len(p) >= 2 and p[1] == ":":
        p = p[0].upper() + p[1:]
    return p


def qualify_path(p: str | Path) -> str:
    """Absolute, normalised form of ``p`` used as the store key."""
    return normalize_path(Path(p).expanduser().resolve())


def same_path(a: str, b: str) -> bool:
    # Registry value names are case-insensitive.
    return normalize_path(a).casefold() == normalize_path(b).casefold()


def is_exe(path: str) -> bool:
    return os.path.isabs(path) and path.lower().endswith(EXE_SUFFIX)


def validate_exe(path: str | Path, operation: str = "set") -> str:
    """Return the qualified path or raise ``ValidationError``."""
    try:
        qualified = qualify_path(path)
    except (OSError, ValueError) as e:
        raise ValidationError(str(path), str(e), operation) from e
    target = Path(qualified)
    try:
        exists, is_file = target.exists(), target.is_file()
    except OSError as e:
        raise ValidationError(qualified, e.strerror or str(e), operation) from e
    if not exists:
        raise ValidationError(qualified, "file does not exist", operation)
    if not is_file:
        raise ValidationError(qualified, "not a regular file", operation)
    if target.suffix.lower() != EXE_SUFFIX:
        raise ValidationError(
            qualified, f"expected a {EXE_SUFFIX} file, got '{target.suffix}'", operation
        )
    return qualified


class Pref(IntEnum):
    AUTO = 0
    POWER = 1
    PERF = 2

    @property
    def label(self) -> str:
        return LABELS[self]

    def to_reg_value(self) -> str:
        return f"GpuPreference={int(self)};"

    @staticmethod
    def from_reg_value(val) -> "Pref":
        # Anything we do not recognise falls back to letting Windows decide.
        if val == "GpuPreference=1;":
            return Pref.POWER
        if val == "GpuPreference=2;":
            return Pref.PERF
        return Pref.AUTO

    @staticmethod
    def from_label(text: str) -> "Pref":
        wanted = str(text).strip().casefold()
        for pref, label in LABELS.items():
            if label.casefold() == wanted:
                return pref
        choices = ", ".join(f"'{label}'" for label in LABELS.values())
        raise ValueError(f"invalid GPU preference '{text}' (choose from {choices})")


LABELS: Dict[Pref, str] = {
    Pref.AUTO: "Auto",
    Pref.POWER: "Low Performance",
    Pref.PERF: "High Performance",
}


@dataclass(frozen=True)
class Entry:
    exe: str
    pref: Pref

    def to_record(self) -> Dict[str, str]:
        return {"Path": self.exe, "GraphicsProfile": self.pref.label}
