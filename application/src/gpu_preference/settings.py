"""QSettings-based config persistence"""

from typing import Optional

from PySide6.QtCore import QSize, QSettings

from .preference import Pref


class AppSettings:
    """Wraps QSettings for app preferences."""

    _ORG = "gpu-preference"
    _APP = "GPU Preferences Manager"

    def __init__(self, qs: Optional[QSettings] = None):
        self._qs = qs if qs is not None else QSettings(self._ORG, self._APP)

    # ---- default preference for newly added executables ----
    @property
    def default_pref(self) -> Pref:
        raw = self._qs.value("default_pref", int(Pref.PERF), type=int)
        try:
            return Pref(raw)
        except ValueError:
            return Pref.PERF

    @default_pref.setter
    def default_pref(self, pref: Pref):
        self._qs.setValue("default_pref", int(pref))

    # ---- window size ----
    def window_size(self) -> Optional[QSize]:
        size = self._qs.value("window_size")
        if isinstance(size, QSize):
            return size
        try:
            if size:
                w, h = map(int, size)
                return QSize(w, h)
        except (TypeError, ValueError):
            pass
        return None

    def save_window_size(self, size: QSize):
        self._qs.setValue("window_size", size)

    # ---- column widths ----
    def column_width(self, column: int) -> Optional[int]:
        w = self._qs.value(f"column_width_{column}")
        try:
            return int(w) if w else None
        except (TypeError, ValueError):
            return None

    def save_column_width(self, column: int, width: int):
        self._qs.setValue(f"column_width_{column}", width)

    def sync(self):
        self._qs.sync()
