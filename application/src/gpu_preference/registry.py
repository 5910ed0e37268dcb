"""Key/value stores holding the per-user GPU preferences.

``WinRegistryStore`` talks to the real registry; ``MemoryStore`` keeps the
same contract in process so the operations can run without touching it.
"""

import sys
from abc import ABC, abstractmethod
from typing import Dict

from .errors import StoreError, StoreNotFoundError, StoreWriteError

if sys.platform == "win32":
    import winreg

REG_PATH = r"Software\Microsoft\DirectX\UserGpuPreferences"


class PreferenceStore(ABC):
    @abstractmethod
    def get(self, namespace: str) -> Dict[str, str]: ...

    @abstractmethod
    def set(self, namespace: str, key: str, value: str) -> None: ...

    @abstractmethod
    def exists(self, namespace: str) -> bool: ...

    @abstractmethod
    def create_namespace(self, namespace: str) -> None: ...


class WinRegistryStore(PreferenceStore):
    """Values under ``HKEY_CURRENT_USER\\<namespace>``.

    ``get`` returns values in registry enumeration order, which Windows does
    not guarantee; callers must not rely on it.
    """

    def __init__(self):
        if sys.platform != "win32":
            raise StoreError(
                f"the Windows registry is not available on {sys.platform}",
                operation="open",
            )
        self.hive = winreg.HKEY_CURRENT_USER
        self.key_flags = winreg.KEY_SET_VALUE | winreg.KEY_WOW64_64KEY

    def get(self, namespace: str) -> Dict[str, str]:
        out: Dict[str, str] = {}
        try:
            key = winreg.OpenKey(self.hive, namespace)
        except FileNotFoundError:
            raise StoreNotFoundError(namespace) from None
        except OSError as e:
            raise StoreError(str(e), namespace, "list") from e
        with key:
            try:
                _, n_values, _ = winreg.QueryInfoKey(key)
                for i in range(n_values):
                    name, val, _ = winreg.EnumValue(key, i)
                    out[name] = val if isinstance(val, str) else str(val)
            except OSError as e:
                raise StoreError(str(e), namespace, "list") from e
        return out

    def set(self, namespace: str, key: str, value: str) -> None:
        try:
            with winreg.OpenKey(self.hive, namespace, 0, self.key_flags) as hkey:
                winreg.SetValueEx(hkey, key, 0, winreg.REG_SZ, value)
        except OSError as e:
            raise StoreWriteError(str(e), key) from e

    def exists(self, namespace: str) -> bool:
        try:
            with winreg.OpenKey(self.hive, namespace):
                return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StoreError(str(e), namespace, "open") from e

    def create_namespace(self, namespace: str) -> None:
        try:
            with winreg.CreateKeyEx(self.hive, namespace, 0, self.key_flags):
                pass
        except OSError as e:
            raise StoreWriteError(str(e), namespace, "create") from e


class MemoryStore(PreferenceStore):
    """In-process store; keys compare case-insensitively like registry names."""

    def __init__(self, data: Dict[str, Dict[str, str]] | None = None):
        self.namespaces: Dict[str, Dict[str, str]] = {
            ns: dict(values) for ns, values in (data or {}).items()
        }

    def get(self, namespace: str) -> Dict[str, str]:
        if namespace not in self.namespaces:
            raise StoreNotFoundError(namespace)
        return dict(self.namespaces[namespace])

    def set(self, namespace: str, key: str, value: str) -> None:
        values = self.namespaces.get(namespace)
        if values is None:
            raise StoreWriteError("namespace does not exist", key)
        for existing in values:
            if existing.casefold() == key.casefold():
                values[existing] = value
                return
        values[key] = value

    def exists(self, namespace: str) -> bool:
        return namespace in self.namespaces

    def create_namespace(self, namespace: str) -> None:
        self.namespaces.setdefault(namespace, {})
