import os
from pathlib import Path

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
QtWidgets = pytest.importorskip("PySide6.QtWidgets")
QtCore = pytest.importorskip("PySide6.QtCore")

from gpu_preference import gui
from gpu_preference.manager import RegistryManager
from gpu_preference.preference import Pref, qualify_path
from gpu_preference.settings import AppSettings


@pytest.fixture(scope="module")
def qapp():
    app = QtWidgets.QApplication.instance() or QtWidgets.QApplication([])
    yield app


@pytest.fixture
def window(qapp, manager, tmp_path: Path, monkeypatch):
    messages = []
    monkeypatch.setattr(gui.QMessageBox, "information", lambda *a, **k: messages.append(a))
    monkeypatch.setattr(gui.QMessageBox, "warning", lambda *a, **k: messages.append(a))
    qs = QtCore.QSettings(str(tmp_path / "gui.ini"), QtCore.QSettings.IniFormat)
    win = gui.MainWindow(manager, AppSettings(qs))
    win.messages = messages
    yield win
    win.close()


def _column(win, col) -> list:
    return [win.model.item(r, col).text() for r in range(win.model.rowCount())]


def test_empty_store_shows_no_rows(window):
    assert window.model.rowCount() == 0
    assert window.messages == []


def test_add_paths_uses_default_and_reports_failures(window, make_file, tmp_path):
    good = make_file("game.exe")
    result = window._add_paths([str(good), str(tmp_path / "missing.exe")])

    assert len(result.entries) == 1
    assert len(result.failures) == 1
    assert _column(window, window.Columns.EXEC) == [qualify_path(good)]
    assert _column(window, window.Columns.PREF) == ["High Performance"]
    assert window.messages


def test_add_paths_skips_duplicates(window, manager, make_file):
    exe = make_file("game.exe")
    manager.set_preference(exe, Pref.POWER)

    result = window._add_paths([str(exe)])

    assert result.entries == []
    assert manager.list_preferences(exe)[0].pref == Pref.POWER


def test_preference_filter(window, manager, make_file):
    manager.set_preference(make_file("a.exe"), Pref.AUTO)
    manager.set_preference(make_file("b.exe"), Pref.PERF)
    window._load_entries()
    assert window.model.rowCount() == 2

    window.pref_filter_box.setCurrentIndex(window.pref_filter_box.findText("High Performance"))
    assert _column(window, window.Columns.PREF) == ["High Performance"]


def test_change_selected(window, manager, make_file):
    exe = make_file("a.exe")
    manager.set_preference(exe, Pref.AUTO)
    window._load_entries()

    window.table.selectRow(0)
    assert window.selector.current() == Pref.AUTO

    window.apply_pref(window._selected_paths(), Pref.POWER)

    assert manager.list_preferences(exe)[0].pref == Pref.POWER
    assert _column(window, window.Columns.PREF) == ["Low Performance"]


def test_selector_clears_on_mixed_selection(window, manager, make_file):
    manager.set_preference(make_file("a.exe"), Pref.AUTO)
    manager.set_preference(make_file("b.exe"), Pref.PERF)
    window._load_entries()

    window.table.selectAll()
    assert window.selector.current() is None

    window.table.clearSelection()
    assert not window.selector.isEnabled()


def test_selector_click_writes_selection(window, manager, make_file):
    exe = make_file("a.exe")
    manager.set_preference(exe, Pref.AUTO)
    window._load_entries()
    window.table.selectRow(0)

    window.selector.group.button(int(Pref.PERF)).click()

    assert manager.list_preferences(exe)[0].pref == Pref.PERF


def test_missing_executable_marked(window, store, manager, make_file, tmp_path):
    exe = make_file("gone.exe")
    manager.set_preference(exe, Pref.PERF)
    exe.unlink()
    window._load_entries()

    assert _column(window, window.Columns.EXISTS) == ["●  No"]
    assert window.model.item(0, window.Columns.EXISTS).data(QtCore.Qt.UserRole) is False


def test_restore_bad_backup_warns(window, tmp_path):
    backup = tmp_path / "backup.json"
    backup.write_text("[1, 2]", encoding="utf-8")

    assert window.restore_from(str(backup)) is None
    assert window.messages


def test_process_picker_selection(qapp, make_file, monkeypatch):
    exe = make_file("game.exe")

    class Proc:
        def __init__(self, path, pid):
            self.info = {"exe": path, "pid": pid}

    procs = [Proc(str(exe), 10), Proc(str(exe).upper(), 11), Proc(None, 12), Proc("/bin/sh", 13)]
    monkeypatch.setattr(gui.psutil, "process_iter", lambda attrs=None: iter(procs))

    running = gui.running_executables()
    assert [pid for _, pid in running] == [10]

    dlg = gui.ProcessPicker(running)
    assert dlg.selected_paths() == []
    dlg.list.item(0).setCheckState(QtCore.Qt.Checked)
    assert dlg.selected_paths() == [running[0][0]]

    dlg.search.setText("nomatch")
    assert dlg.list.item(0).isHidden()


def test_find_executables(make_file, tmp_path):
    make_file("bin/a.exe")
    make_file("bin/sub/B.EXE")
    make_file("bin/readme.txt")
    found = sorted(Path(p).name for p in gui.find_executables(str(tmp_path / "bin")))
    assert found == ["B.EXE", "a.exe"]
