from pathlib import Path

import pytest

from gpu_preference.manager import RegistryManager
from gpu_preference.registry import MemoryStore


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def manager(store: MemoryStore) -> RegistryManager:
    return RegistryManager(store)


@pytest.fixture
def make_file(tmp_path: Path):
    def _make(name: str) -> Path:
        p = tmp_path / name
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(b"MZ")
        return p

    return _make
