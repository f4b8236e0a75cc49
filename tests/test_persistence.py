"""
Tests for cache file persistence — location, load, locked write-back.
"""

import json
import logging
import multiprocessing
import os
import stat
from pathlib import Path

import pytest

from pkgprobe.core.config.loader import DEFAULT_CACHE_FILE
from pkgprobe.core.models.classification import UNCLASSIFIED, ClassificationStore
from pkgprobe.core.persistence.cache_file import CacheFileManager


def _read(path: Path) -> dict:
    return json.loads(path.read_text())


def _write(path: Path, data: dict) -> None:
    path.write_text(json.dumps(data))


def _as_sets(document: dict) -> dict:
    return {bucket: set(ids) for bucket, ids in document["ids"].items()}


# Nested deeper than the interpreter recursion limit
_DEEP_ARRAY = "[" * 100000 + "]" * 100000


class TestLocateCacheFile:
    def test_first_usable_candidate_wins(self, tmp_path: Path):
        first, second = tmp_path / "first", tmp_path / "second"
        first.mkdir()
        second.mkdir()
        manager = CacheFileManager(cache_dirs=[str(first), str(second)])

        handle = manager.locate_cache_file()
        assert handle is not None
        with handle:
            assert handle.name == str(first / DEFAULT_CACHE_FILE)
        assert (first / DEFAULT_CACHE_FILE).is_file()
        assert not (second / DEFAULT_CACHE_FILE).exists()

    def test_falls_back_when_directory_missing(self, tmp_path: Path, cache_dir: Path):
        manager = CacheFileManager(cache_dirs=[str(tmp_path / "missing"), str(cache_dir)])
        handle = manager.locate_cache_file()
        assert handle is not None
        with handle:
            assert handle.name == str(cache_dir / DEFAULT_CACHE_FILE)
        assert not (tmp_path / "missing").exists()

    def test_colon_separated_candidates(self, tmp_path: Path, cache_dir: Path):
        manager = CacheFileManager(cache_dirs=[f"{tmp_path / 'nope'}:{cache_dir}"])
        assert manager.candidates() == [
            tmp_path / "nope" / DEFAULT_CACHE_FILE,
            cache_dir / DEFAULT_CACHE_FILE,
        ]
        handle = manager.locate_cache_file()
        assert handle is not None
        handle.close()

    def test_no_usable_location(self, tmp_path: Path):
        manager = CacheFileManager(cache_dirs=[str(tmp_path / "a"), str(tmp_path / "b")])
        assert manager.locate_cache_file() is None

    def test_created_with_permissive_mode(self, cache_dir: Path):
        old_umask = os.umask(0)
        try:
            handle = CacheFileManager(cache_dirs=[str(cache_dir)]).locate_cache_file()
            assert handle is not None
            handle.close()
        finally:
            os.umask(old_umask)
        mode = stat.S_IMODE((cache_dir / DEFAULT_CACHE_FILE).stat().st_mode)
        assert mode == 0o666

    def test_existing_contents_untouched(self, cache_path: Path, files: CacheFileManager):
        _write(cache_path, {"ids": {"apt": ["1"]}, "outdated": []})
        handle = files.locate_cache_file()
        assert handle is not None
        handle.close()
        assert _read(cache_path) == {"ids": {"apt": ["1"]}, "outdated": []}

    def test_custom_file_name(self, cache_dir: Path):
        manager = CacheFileManager(cache_file_name="custom.json", cache_dirs=[str(cache_dir)])
        handle = manager.locate_cache_file()
        assert handle is not None
        handle.close()
        assert (cache_dir / "custom.json").is_file()


class TestLoad:
    def test_load_new_file(self, files: CacheFileManager, cache_path: Path):
        store = files.load()
        assert store.valid
        assert store.path == str(cache_path)
        assert store.ids == {}
        assert cache_path.is_file()

    def test_load_good_json(self, files: CacheFileManager, cache_path: Path):
        _write(cache_path, {
            "ids": {"zypper": ["1", "2"], "dnf": ["4"], UNCLASSIFIED: ["3", "5", "6"]},
            "outdated": [],
        })
        store = files.load()
        assert store.valid
        assert store.ids["zypper"] == ["1", "2"]
        assert store.ids["dnf"] == ["4"]
        assert store.ids[UNCLASSIFIED] == ["3", "5", "6"]
        assert store.outdated == []

    def test_load_bad_json(self, files: CacheFileManager, cache_path: Path, caplog):
        cache_path.write_text("{not json")
        with caplog.at_level(logging.WARNING):
            store = files.load()
        assert store.valid
        assert store.path == str(cache_path)
        assert store.ids == {}
        assert "Decoding of cache file" in caplog.text

    def test_load_too_deeply_nested(self, files: CacheFileManager, cache_path: Path, caplog):
        cache_path.write_text(_DEEP_ARRAY)
        with caplog.at_level(logging.WARNING):
            store = files.load()
        assert store.valid
        assert store.path == str(cache_path)
        assert store.ids == {}
        assert "Decoding of cache file" in caplog.text

    def test_load_wrong_shape(self, files: CacheFileManager, cache_path: Path):
        cache_path.write_text('["a", "b"]')
        store = files.load()
        assert store.valid
        assert store.ids == {}

    def test_load_whitespace_only(self, files: CacheFileManager, cache_path: Path, caplog):
        cache_path.write_text("\n  \n")
        with caplog.at_level(logging.WARNING):
            store = files.load()
        assert store.valid
        assert "Decoding" not in caplog.text

    def test_load_ignores_unknown_fields(self, files: CacheFileManager, cache_path: Path):
        _write(cache_path, {"ids": {"apt": ["1"]}, "outdated": ["1"], "version": 3})
        store = files.load()
        assert store.ids == {"apt": ["1"]}
        assert store.outdated == ["1"]

    def test_load_unavailable(self, tmp_path: Path, caplog):
        manager = CacheFileManager(cache_dirs=[str(tmp_path / "gone")])
        with caplog.at_level(logging.WARNING):
            store = manager.load()
        assert not store.valid
        assert "caching disabled" in caplog.text


class TestWriteBack:
    def test_invalid_store_never_written(self, files: CacheFileManager, cache_path: Path):
        expected = {"ids": {"dnf": ["1"]}, "outdated": []}
        _write(cache_path, expected)

        store = ClassificationStore.invalid()
        store.add("apt", "2")
        assert files.write_back(store) is False
        assert _read(cache_path) == expected

    def test_rewrites_unchanged_contents(self, files: CacheFileManager, cache_path: Path):
        expected = {"ids": {"dnf": ["1"]}, "outdated": []}
        _write(cache_path, expected)
        store = ClassificationStore.empty(path=str(cache_path))
        assert files.write_back(store) is True
        assert _read(cache_path) == expected

    def test_compact_single_line(self, files: CacheFileManager, cache_path: Path):
        store = files.load()
        store.add("apt", "img1")
        files.write_back(store)
        assert cache_path.read_text() == '{"ids":{"apt":["img1"]},"outdated":[]}\n'

    def test_missing_file_logged(self, files: CacheFileManager, cache_path: Path, caplog):
        store = files.load()
        cache_path.unlink()
        with caplog.at_level(logging.WARNING):
            assert files.write_back(store) is False
        assert "Cannot write to the cache file" in caplog.text
        assert not cache_path.exists()

    def test_merges_concurrent_update(self, files: CacheFileManager, cache_path: Path):
        _write(cache_path, {"ids": {"zypper": ["a"]}, "outdated": []})
        slow = files.load()

        _write(cache_path, {"ids": {"zypper": ["a"], "dnf": ["b"]}, "outdated": ["a"]})

        slow.add("zypper", "c")
        files.write_back(slow)

        final = _read(cache_path)
        assert final["ids"]["zypper"] == ["a", "c"]
        assert final["ids"]["dnf"] == ["b"]
        assert final["outdated"] == ["a"]

    def test_write_back_refreshes_memory(self, files: CacheFileManager, cache_path: Path):
        store = files.load()
        _write(cache_path, {"ids": {"dnf": ["b"]}, "outdated": []})
        files.write_back(store)
        assert store.find("b") == "dnf"

    def test_either_order_same_result(self, files: CacheFileManager, cache_path: Path):
        for order in ((0, 1), (1, 0)):
            _write(cache_path, {"ids": {"apt": ["x"]}, "outdated": []})
            stores = [files.load(), files.load()]
            stores[0].add("apt", "y")
            stores[1].add("apt", "z")
            for index in order:
                files.write_back(stores[index])
            final = _read(cache_path)
            assert sorted(final["ids"]["apt"]) == ["x", "y", "z"]

    def test_idempotent(self, files: CacheFileManager, cache_path: Path):
        store = files.load()
        store.add("apt", "1")
        store.add_remediated("0")
        files.write_back(store)
        once = cache_path.read_text()
        files.write_back(store)
        assert cache_path.read_text() == once

    def test_replace_discards_disk(self, files: CacheFileManager, cache_path: Path):
        store = files.load()
        _write(cache_path, {"ids": {"dnf": ["b"]}, "outdated": ["b"]})
        store.clear()
        assert files.write_back(store, replace=True) is True
        assert _read(cache_path) == {"ids": {}, "outdated": []}

    def test_corrupt_disk_overwritten(self, files: CacheFileManager, cache_path: Path, caplog):
        store = files.load()
        store.add("apt", "1")
        cache_path.write_text("garbage")
        with caplog.at_level(logging.WARNING):
            assert files.write_back(store) is True
        assert _read(cache_path) == {"ids": {"apt": ["1"]}, "outdated": []}

    def test_too_deeply_nested_disk_overwritten(
        self, files: CacheFileManager, cache_path: Path, caplog
    ):
        store = files.load()
        store.add("apt", "1")
        cache_path.write_text('{"ids":' + _DEEP_ARRAY + "}")
        with caplog.at_level(logging.WARNING):
            assert files.write_back(store) is True
        assert _read(cache_path) == {"ids": {"apt": ["1"]}, "outdated": []}
        assert "Decoding of cache file" in caplog.text

    def test_invalid_utf8_id_replaced_on_rewrite(self, files: CacheFileManager, cache_path: Path):
        cache_path.write_bytes(b'{"ids":{"apt":["img\xff"]},"outdated":[]}')
        store = files.load()
        assert store.find("img\ufffd") == "apt"

        store.add("dnf", "y")
        assert files.write_back(store) is True
        raw = cache_path.read_bytes()
        assert b"img\xef\xbf\xbd" in raw
        assert b"img\xff" not in raw
        assert json.loads(raw.decode("utf-8"))["ids"] == {"apt": ["img\ufffd"], "dnf": ["y"]}


# ── Cross-process ───────────────────────────────────────────────────


def _add_entries(cache_dir: str, backend: str, prefix: str, count: int) -> None:
    manager = CacheFileManager(cache_dirs=[cache_dir])
    for i in range(count):
        store = manager.load()
        store.add(backend, f"{prefix}{i}")
        manager.write_back(store)


@pytest.mark.skipif(
    "fork" not in multiprocessing.get_all_start_methods(),
    reason="requires fork start method",
)
class TestCrossProcess:
    def test_concurrent_writers_lose_nothing(self, cache_dir: Path, cache_path: Path):
        ctx = multiprocessing.get_context("fork")
        workers = [
            ctx.Process(target=_add_entries, args=(str(cache_dir), backend, backend[0], 15))
            for backend in ("apt", "zypper", "dnf")
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join(timeout=60)
            assert worker.exitcode == 0

        final = _as_sets(_read(cache_path))
        assert final == {
            "apt": {f"a{i}" for i in range(15)},
            "zypper": {f"z{i}" for i in range(15)},
            "dnf": {f"d{i}" for i in range(15)},
        }
