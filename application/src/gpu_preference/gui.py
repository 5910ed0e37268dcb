#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import os
import sys
from enum import IntEnum
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

import psutil

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QAction, QActionGroup, QColor, QStandardItem, QStandardItemModel
from PySide6.QtWidgets import (
    QApplication,
    QAbstractItemView,
    QButtonGroup,
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFileDialog,
    QHBoxLayout,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMenu,
    QMessageBox,
    QSizePolicy,
    QStyledItemDelegate,
    QTableView,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from .errors import GpuPreferenceError, StoreNotFoundError
from .log import get_logger
from .manager import BatchResult, RegistryManager
from .preference import Entry, Pref, is_exe, normalize_path, qualify_path, same_path
from .registry import WinRegistryStore
from .settings import AppSettings

logger = get_logger()

EXISTS_COLORS = {True: QColor(120, 199, 143), False: QColor(255, 153, 160)}
MISSING_BG = QColor(44, 7, 7)


def running_executables() -> List[Tuple[str, int]]:
    """(path, pid) of each distinct running .exe, first process wins."""
    seen: set[str] = set()
    out = []
    for proc in psutil.process_iter(["exe", "pid"]):
        path = proc.info["exe"]
        if not path:
            continue
        path = normalize_path(path)
        if not is_exe(path) or path.casefold() in seen:
            continue
        seen.add(path.casefold())
        out.append((path, proc.info["pid"]))
    return out


def find_executables(folder: str) -> List[str]:
    paths: List[str] = []
    for root, _, files in os.walk(folder):
        paths.extend(str(Path(root) / f) for f in files if f.lower().endswith(".exe"))
    return paths


def summarize(result: BatchResult, skipped: int = 0) -> str:
    lines = []
    if result.entries:
        lines.append(f"Updated {len(result.entries)}.")
    if skipped:
        lines.append(f"Ignored {skipped} duplicate(s).")
    if result.failures:
        lines.append(f"Failed {len(result.failures)}:")
        lines.extend(f"• {err}" for _, err in result.failures)
    return "\n".join(lines)


class PrefSelector(QWidget):
    """One checkable button per preference; emits the preference clicked."""

    chosen = Signal(object)

    def __init__(self, parent=None):
        super().__init__(parent)
        row = QHBoxLayout(self)
        row.setContentsMargins(0, 0, 0, 0)
        row.setSpacing(0)
        self.group = QButtonGroup(self)
        for pref in Pref:
            b = QToolButton(self)
            b.setText(pref.label)
            b.setCheckable(True)
            self.group.addButton(b, int(pref))
            row.addWidget(b)
        self.group.idClicked.connect(lambda code: self.chosen.emit(Pref(code)))

    def show_pref(self, pref: Optional[Pref]):
        # An exclusive group refuses to uncheck everything.
        self.group.setExclusive(pref is not None)
        for b in self.group.buttons():
            b.setChecked(pref is not None and self.group.id(b) == int(pref))

    def current(self) -> Optional[Pref]:
        code = self.group.checkedId()
        return None if code < 0 else Pref(code)


class PrefDelegate(QStyledItemDelegate):
    def __init__(self, window: "MainWindow"):
        super().__init__(window.table)
        self.window = window

    def createEditor(self, parent, option, index):
        cb = QComboBox(parent)
        for pref in Pref:
            cb.addItem(pref.label, int(pref))
        return cb

    def setEditorData(self, editor: QComboBox, index):
        editor.setCurrentIndex(editor.findText(index.data(Qt.EditRole)))

    def setModelData(self, editor: QComboBox, model, index):
        exe = model.item(index.row(), MainWindow.Columns.EXEC).text()
        pref = Pref(editor.currentData())
        result = self.window.manager.set_preferences([exe], pref)
        if result.ok:
            model.setData(index, pref.label)
        else:
            QMessageBox.warning(self.window, "GPU Preference", summarize(result))


class ProcessPicker(QDialog):
    def __init__(self, processes: List[Tuple[str, int]], parent=None):
        super().__init__(parent)
        self.setWindowTitle("Add from Running Processes")
        self.resize(640, 420)

        layout = QVBoxLayout(self)
        self.search = QLineEdit(self, placeholderText="Search executables…")
        self.search.textChanged.connect(self._filter)
        layout.addWidget(self.search)

        self.list = QListWidget(self)
        for path, pid in processes:
            item = QListWidgetItem(f"{Path(path).name}  (PID {pid})", self.list)
            item.setData(Qt.UserRole, path)
            item.setToolTip(path)
            item.setFlags(item.flags() | Qt.ItemIsUserCheckable)
            item.setCheckState(Qt.Unchecked)
        layout.addWidget(self.list)

        buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel, parent=self)
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _items(self) -> List[QListWidgetItem]:
        return [self.list.item(i) for i in range(self.list.count())]

    def _filter(self, text: str):
        text = text.strip().lower()
        for item in self._items():
            item.setHidden(bool(text) and text not in item.data(Qt.UserRole).lower())

    def selected_paths(self) -> List[str]:
        return [i.data(Qt.UserRole) for i in self._items() if i.checkState() == Qt.Checked]


class MainWindow(QMainWindow):
    class Columns(IntEnum):
        IDX = 0
        EXEC = 1
        PREF = 2
        EXISTS = 3

    HEADERS = ["", "Executable", "GPU Preference", "Exists"]

    def __init__(self, manager: RegistryManager, settings: Optional[AppSettings] = None):
        super().__init__()
        self.setWindowTitle("GPU Preferences Manager")
        self.manager = manager
        self.settings = settings if settings is not None else AppSettings()
        self.default_pref: Pref = self.settings.default_pref
        self.pref_filter: Optional[Pref] = None

        size = self.settings.window_size()
        if size is not None:
            self.resize(size)
        else:
            self.resize(980, 600)
        self._build_toolbar()
        self._build_table()
        self._load_entries()

    def _build_toolbar(self):
        tb = self.addToolBar("Actions")
        tb.setMovable(False)

        add_menu = QMenu("Add", self)
        add_menu.addAction("Add Files…", self._on_add_files)
        add_menu.addAction("Add Folder…", self._on_add_folder)
        add_menu.addAction("From Running Processes…", self._on_add_running)
        add_btn = QToolButton(self)
        add_btn.setText("Add")
        add_btn.setMenu(add_menu)
        add_btn.setPopupMode(QToolButton.InstantPopup)
        tb.addWidget(add_btn)
        tb.addSeparator()

        self.selector = PrefSelector(self)
        self.selector.chosen.connect(lambda pref: self.apply_pref(self._selected_paths(), pref))
        tb.addWidget(self.selector)
        tb.addSeparator()

        tb.addAction("Check Paths", self._refresh_existence)
        tb.addAction("Refresh", self._load_entries)

        opt_menu = QMenu("Options", self)
        default_menu = opt_menu.addMenu("Default GPU Preference")
        group = QActionGroup(self)
        for pref in Pref:
            act = QAction(pref.label, self, checkable=True)
            act.setChecked(pref == self.default_pref)
            act.triggered.connect(lambda _=False, p=pref: self._set_default_pref(p))
            group.addAction(act)
            default_menu.addAction(act)
        opt_menu.addAction("Backup…", self._on_backup)
        opt_menu.addAction("Restore…", self._on_restore)
        opt_btn = QToolButton(self)
        opt_btn.setText("Options")
        opt_btn.setMenu(opt_menu)
        opt_btn.setPopupMode(QToolButton.InstantPopup)
        tb.addWidget(opt_btn)

        spacer = QWidget(self)
        spacer.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Preferred)
        tb.addWidget(spacer)

        self.pref_filter_box = QComboBox(self)
        self.pref_filter_box.addItem("All Preferences", None)
        for pref in Pref:
            self.pref_filter_box.addItem(pref.label, int(pref))
        self.pref_filter_box.currentIndexChanged.connect(self._on_pref_filter_changed)
        tb.addWidget(self.pref_filter_box)

        self.quick_filter = QLineEdit(self, placeholderText="Filter executables…")
        self.quick_filter.setMaximumWidth(280)
        self.quick_filter.textChanged.connect(self._apply_quick_filter)
        tb.addWidget(self.quick_filter)

    def _build_table(self):
        self.model = QStandardItemModel(0, len(self.HEADERS), self)
        self.model.setHorizontalHeaderLabels(self.HEADERS)

        self.table = QTableView(self)
        self.table.setModel(self.model)
        self.table.setAlternatingRowColors(True)
        self.table.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.table.setSelectionMode(QAbstractItemView.ExtendedSelection)
        self.table.setEditTriggers(QAbstractItemView.DoubleClicked)
        self.table.verticalHeader().hide()
        self.table.horizontalHeader().setStretchLastSection(False)
        self.table.setItemDelegateForColumn(self.Columns.PREF, PrefDelegate(self))
        for col in self.Columns:
            width = self.settings.column_width(col)
            if width:
                self.table.setColumnWidth(col, width)
        self.table.selectionModel().selectionChanged.connect(self._on_selection_changed)

        central = QWidget(self)
        lay = QVBoxLayout(central)
        lay.setContentsMargins(12, 8, 12, 12)
        lay.addWidget(self.table)
        self.setCentralWidget(central)
        self.statusBar()

    # ---- reading ----
    def _read_entries(self) -> List[Entry]:
        try:
            return self.manager.list_preferences(pref=self.pref_filter)
        except StoreNotFoundError:
            self.statusBar().showMessage("No GPU preferences have been set yet.", 4000)
        except GpuPreferenceError as e:
            logger.error("Failed to read preferences: %s", e)
            QMessageBox.warning(self, "GPU Preferences", str(e))
        return []

    def _load_entries(self):
        self.model.removeRows(0, self.model.rowCount())
        entries = self._read_entries()
        width = max(2, len(str(len(entries))))
        for i, e in enumerate(entries, start=1):
            row = [QStandardItem(f"{i:0{width}d}"), QStandardItem(e.exe),
                   QStandardItem(e.pref.label), QStandardItem()]
            for col, item in enumerate(row):
                if col != self.Columns.PREF:
                    item.setEditable(False)
            row[self.Columns.EXEC].setToolTip(e.exe)
            self.model.appendRow(row)
        self.table.resizeColumnToContents(self.Columns.IDX)
        self._refresh_existence()
        self._apply_quick_filter(self.quick_filter.text())
        self._on_selection_changed()

    def _refresh_existence(self):
        for r in range(self.model.rowCount()):
            exe_item = self.model.item(r, self.Columns.EXEC)
            exists_item = self.model.item(r, self.Columns.EXISTS)
            exe = exe_item.text()
            flag = Path(exe).is_file() if is_exe(exe) else None
            exists_item.setText("" if flag is None else ("●  Yes" if flag else "●  No"))
            exists_item.setData(flag, Qt.UserRole)
            exists_item.setData(EXISTS_COLORS.get(flag), Qt.ForegroundRole)
            exe_item.setData(MISSING_BG if flag is False else None, Qt.BackgroundRole)

    def _on_pref_filter_changed(self, _index: int):
        code = self.pref_filter_box.currentData()
        self.pref_filter = None if code is None else Pref(code)
        self._load_entries()

    def _apply_quick_filter(self, text: str):
        text = text.strip().lower()
        for r in range(self.model.rowCount()):
            haystack = " ".join(
                self.model.item(r, c).text().lower() for c in (self.Columns.EXEC, self.Columns.PREF)
            )
            self.table.setRowHidden(r, bool(text) and text not in haystack)

    def _selected_paths(self) -> List[str]:
        rows = sorted(i.row() for i in self.table.selectionModel().selectedRows())
        return [self.model.item(r, self.Columns.EXEC).text() for r in rows]

    def _on_selection_changed(self, *_):
        rows = self.table.selectionModel().selectedRows()
        self.selector.setEnabled(bool(rows))
        prefs = {Pref.from_label(self.model.item(i.row(), self.Columns.PREF).text()) for i in rows}
        self.selector.show_pref(prefs.pop() if len(prefs) == 1 else None)

    # ---- writing ----
    def apply_pref(self, paths: List[str], pref: Pref) -> BatchResult:
        if not paths:
            return BatchResult()
        result = self.manager.set_preferences(paths, pref)
        if result.failures:
            QMessageBox.warning(self, "GPU Preference", summarize(result))
        else:
            self.statusBar().showMessage(f"Set {len(result.entries)} to {pref.label}", 3000)
        self._load_entries()
        return result

    def _is_listed(self, path: str, existing: List[str]) -> bool:
        try:
            qualified = qualify_path(path)
        except (OSError, ValueError):
            # Let the batch report it as a validation failure.
            return False
        return any(same_path(qualified, e) for e in existing)

    def _add_paths(self, paths: Iterable[str]) -> BatchResult:
        paths = list(paths)
        try:
            existing = [e.exe for e in self.manager.read_all()]
        except StoreNotFoundError:
            existing = []
        fresh = [p for p in paths if not self._is_listed(p, existing)]
        skipped = len(paths) - len(fresh)

        result = self.manager.set_preferences(fresh, self.default_pref)
        self._load_entries()
        message = summarize(result, skipped)
        if message:
            QMessageBox.information(self, "Results", message)
        return result

    def _on_add_files(self):
        paths, _ = QFileDialog.getOpenFileNames(
            self, "Select EXEs", str(Path.home()), "Executables (*.exe)"
        )
        if paths:
            self._add_paths(paths)

    def _on_add_folder(self):
        folder = QFileDialog.getExistingDirectory(self, "Select Folder", str(Path.home()))
        if folder:
            self._add_paths(find_executables(folder))

    def _on_add_running(self):
        dlg = ProcessPicker(running_executables(), self)
        if dlg.exec() == QDialog.Accepted:
            self._add_paths(dlg.selected_paths())

    def _set_default_pref(self, pref: Pref):
        self.default_pref = pref
        self.settings.default_pref = pref
        self.statusBar().showMessage(f"New default set to “{pref.label}”.", 3000)

    def _on_backup(self):
        path, _ = QFileDialog.getSaveFileName(
            self, "Backup Config As…", str(Path.home()), "JSON Files (*.json)"
        )
        if not path:
            return
        try:
            n = self.manager.backup(path)
        except (GpuPreferenceError, OSError) as e:
            QMessageBox.warning(self, "Backup", str(e))
            return
        QMessageBox.information(self, "Backup", f"Saved {n} entries to:\n{path}")

    def _on_restore(self):
        path, _ = QFileDialog.getOpenFileName(
            self, "Select Backup…", str(Path.home()), "JSON Files (*.json)"
        )
        if path:
            self.restore_from(path)

    def restore_from(self, path: str) -> Optional[BatchResult]:
        try:
            result = self.manager.restore(path)
        except (GpuPreferenceError, OSError, ValueError) as e:
            QMessageBox.warning(self, "Restore", str(e))
            return None
        self._load_entries()
        QMessageBox.information(self, "Restore", summarize(result) or "Nothing to restore.")
        return result

    def closeEvent(self, event):
        self.settings.save_window_size(self.size())
        for col in self.Columns:
            self.settings.save_column_width(col, self.table.columnWidth(col))
        super().closeEvent(event)


def main():
    app = QApplication(sys.argv)
    try:
        manager = RegistryManager(WinRegistryStore())
    except GpuPreferenceError as e:
        QMessageBox.critical(None, "GPU Preferences Manager", str(e))
        return 1

    win = MainWindow(manager)
    win.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
