import sys
from types import SimpleNamespace

import pytest

from gpu_preference.errors import StoreError, StoreNotFoundError, StoreWriteError
from gpu_preference import registry
from gpu_preference.registry import REG_PATH, MemoryStore, PreferenceStore, WinRegistryStore


def test_memory_store_missing_namespace():
    store = MemoryStore()
    assert not store.exists(REG_PATH)
    with pytest.raises(StoreNotFoundError):
        store.get(REG_PATH)


def test_memory_store_create_is_idempotent():
    store = MemoryStore()
    store.create_namespace(REG_PATH)
    store.set(REG_PATH, "a", "1")
    store.create_namespace(REG_PATH)
    assert store.get(REG_PATH) == {"a": "1"}


def test_memory_store_write_requires_namespace():
    with pytest.raises(StoreWriteError):
        MemoryStore().set(REG_PATH, "a", "1")


def test_memory_store_keys_are_case_insensitive():
    store = MemoryStore({REG_PATH: {r"C:\Game.exe": "GpuPreference=1;"}})
    store.set(REG_PATH, r"c:\game.EXE", "GpuPreference=2;")
    assert store.get(REG_PATH) == {r"C:\Game.exe": "GpuPreference=2;"}


def test_memory_store_keeps_insertion_order():
    store = MemoryStore()
    store.create_namespace(REG_PATH)
    for key in ["b", "c", "a"]:
        store.set(REG_PATH, key, "x")
    assert list(store.get(REG_PATH)) == ["b", "c", "a"]


def test_memory_store_get_returns_copy():
    store = MemoryStore({REG_PATH: {"a": "1"}})
    store.get(REG_PATH)["b"] = "2"
    assert store.get(REG_PATH) == {"a": "1"}


@pytest.mark.skipif(sys.platform == "win32", reason="registry is available")
def test_registry_store_unavailable_off_windows():
    with pytest.raises(StoreError, match="not available"):
        WinRegistryStore()


@pytest.mark.skipif(sys.platform != "win32", reason="requires the Windows registry")
def test_registry_store_roundtrip():
    import winreg

    namespace = r"Software\gpu-preference-tests"
    store = WinRegistryStore()
    try:
        if store.exists(namespace):
            winreg.DeleteKey(winreg.HKEY_CURRENT_USER, namespace)
        with pytest.raises(StoreNotFoundError):
            store.get(namespace)

        store.create_namespace(namespace)
        store.set(namespace, r"C:\Tools\app.exe", "GpuPreference=2;")
        assert store.exists(namespace)
        assert store.get(namespace) == {r"C:\Tools\app.exe": "GpuPreference=2;"}
    finally:
        try:
            winreg.DeleteKey(winreg.HKEY_CURRENT_USER, namespace)
        except FileNotFoundError:
            pass


def test_preference_store_is_abstract():
    with pytest.raises(TypeError):
        PreferenceStore()

    class Partial(PreferenceStore):
        def get(self, namespace):
            return {}

    with pytest.raises(TypeError):
        Partial()


def _store_with_open_key(monkeypatch, open_key) -> WinRegistryStore:
    monkeypatch.setattr(registry, "winreg", SimpleNamespace(OpenKey=open_key), raising=False)
    store = WinRegistryStore.__new__(WinRegistryStore)
    store.hive = object()
    return store


def test_registry_exists_false_when_key_missing(monkeypatch):
    def open_key(hive, namespace):
        raise FileNotFoundError(2, "The system cannot find the file specified")

    assert _store_with_open_key(monkeypatch, open_key).exists(REG_PATH) is False


def test_registry_exists_maps_access_denied(monkeypatch):
    def open_key(hive, namespace):
        raise PermissionError(13, "Access is denied")

    store = _store_with_open_key(monkeypatch, open_key)
    with pytest.raises(StoreError, match="Access is denied") as info:
        store.exists(REG_PATH)
    assert info.value.path == REG_PATH
    assert info.value.operation == "open"
