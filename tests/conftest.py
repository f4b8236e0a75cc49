"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from pkgprobe.adapters.mock import MockContainerDriver
from pkgprobe.core.config.loader import DEFAULT_CACHE_FILE
from pkgprobe.core.persistence.cache_file import CacheFileManager
from pkgprobe.core.services.classification import ClassificationResolver


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep tests away from the real user cache and config."""
    for var in (
        "PKGPROBE_CONFIG",
        "PKGPROBE_CACHE_DIRS",
        "PKGPROBE_CACHE_FILE",
        "PKGPROBE_LOG_LEVEL",
        "PKGPROBE_LOG_FILE",
        "PKGPROBE_LOG_FILE_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """An existing, writable cache directory."""
    path = tmp_path / "cache"
    path.mkdir()
    return path


@pytest.fixture
def cache_path(cache_dir: Path) -> Path:
    return cache_dir / DEFAULT_CACHE_FILE


@pytest.fixture
def files(cache_dir: Path) -> CacheFileManager:
    return CacheFileManager(cache_dirs=[str(cache_dir)])


@pytest.fixture
def driver() -> MockContainerDriver:
    return MockContainerDriver()


@pytest.fixture
def make_resolver(files: CacheFileManager, driver: MockContainerDriver):
    """Build a resolver the way a fresh process would: load, then wire up."""

    def _make(manager: CacheFileManager | None = None) -> ClassificationResolver:
        manager = manager or files
        return ClassificationResolver(store=manager.load(), files=manager, driver=driver)

    return _make
