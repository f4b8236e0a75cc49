"""
Cache file persistence — locked read-merge-write for ClassificationStore.

The cache is a single JSON file shared by every pkgprobe process on the
host. Processes are short-lived and never hold the file open between
operations, so each write-back re-reads the file under an exclusive
lock and writes the union of what is on disk and what this process
learned. Concurrent writers therefore never lose each other's entries.

The lock is an advisory ``filelock`` lock on ``<cache file>.lock``.
There is no timeout: a writer that hangs while holding the lock stalls
every other writer until it exits.

Nothing in here raises on I/O or decode problems. A cache that cannot
be used degrades to an invalid (pass-through) store; a cache that
cannot be decoded degrades to an empty, still-writable store.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import TextIO

from filelock import FileLock
from pydantic import ValidationError

from pkgprobe.core.config.loader import DEFAULT_CACHE_FILE, default_cache_dirs
from pkgprobe.core.models.classification import ClassificationStore

logger = logging.getLogger(__name__)

# Permissive so every user on the host can share the /tmp fallback
CACHE_FILE_MODE = 0o666
# Undecodable bytes become U+FFFD, so a foreign id with invalid UTF-8
# is rewritten lossily on the next write-back rather than failing it
CACHE_ENCODING_ERRORS = "replace"
LOCK_SUFFIX = ".lock"


class CacheFileManager:
    """Locates, loads and writes back the shared classification cache.

    Args:
        cache_file_name: File name inside the chosen cache directory.
        cache_dirs: Ordered candidate directories. Each entry may be a
            ``:``-separated list, tried left to right.
    """

    def __init__(
        self,
        cache_file_name: str = DEFAULT_CACHE_FILE,
        cache_dirs: list[str] | None = None,
    ):
        self._name = cache_file_name
        self._dirs = default_cache_dirs() if cache_dirs is None else list(cache_dirs)

    def candidates(self) -> list[Path]:
        """Candidate cache file paths, in resolution order."""
        paths = []
        for entry in self._dirs:
            for directory in entry.split(":"):
                paths.append(Path(directory) / self._name)
        return paths

    def locate_cache_file(self) -> TextIO | None:
        """Open (creating if needed) the first usable cache file.

        A candidate is usable when the file can be opened for reading
        and writing and its lock can be taken. Directories are never
        created.

        Returns:
            An open read/write handle (caller closes it), or None if no
            candidate is usable.
        """
        for path in self.candidates():
            try:
                handle = open(
                    str(path), "r+", encoding="utf-8",
                    errors=CACHE_ENCODING_ERRORS, opener=_create,
                )
            except OSError as e:
                logger.debug("Cache candidate %s unusable: %s", path, e)
                continue

            try:
                with self._lock(path):
                    pass
            except OSError as e:
                logger.debug("Cannot lock cache candidate %s: %s", path, e)
                handle.close()
                continue
            return handle
        return None

    def load(self) -> ClassificationStore:
        """Load the cache into a store.

        Returns:
            A valid store bound to the cache path (empty if the file is
            new, empty or corrupt), or an invalid store if no location
            is usable.
        """
        handle = self.locate_cache_file()
        if handle is None:
            logger.warning("Could not find a path for the cache — caching disabled")
            return ClassificationStore.invalid()

        path = handle.name
        try:
            with handle, self._lock(Path(path)):
                raw = handle.read()
        except OSError as e:
            logger.warning("Cannot read the cache file %s: %s — caching disabled", path, e)
            return ClassificationStore.invalid()

        store = self.decode(raw, path)
        logger.debug("Loaded cache from %s (%d ids)", path, store.count())
        return store

    def write_back(self, store: ClassificationStore, replace: bool = False) -> bool:
        """Persist ``store``, merged with the current on-disk contents.

        Under the lock: re-read the file, union it into ``store`` (so the
        in-memory store also picks up other processes' entries), then
        truncate and rewrite. With ``replace`` the on-disk contents are
        discarded instead of merged.

        Returns:
            True if the file was written. Invalid stores and I/O failures
            return False; failures are logged, never raised.
        """
        if not store.valid or store.path is None:
            return False

        path = Path(store.path)
        try:
            with (
                self._lock(path),
                path.open("r+", encoding="utf-8", errors=CACHE_ENCODING_ERRORS) as fh,
            ):
                if not replace:
                    store.merge(self.decode(fh.read(), str(path)))
                fh.seek(0)
                fh.truncate()
                fh.write(self.encode(store))
        except OSError as e:
            logger.warning("Cannot write to the cache file %s: %s", path, e)
            return False

        logger.debug("Cache written to %s (%d ids)", path, store.count())
        return True

    # ── Codec ───────────────────────────────────────────────────

    @staticmethod
    def decode(raw: str, path: str | None = None) -> ClassificationStore:
        """Decode file contents. Empty or corrupt contents give an empty store."""
        if not raw.strip():
            return ClassificationStore.empty(path=path)
        try:
            return ClassificationStore.from_document(json.loads(raw), path)
        except (ValueError, RecursionError, ValidationError) as e:
            logger.warning("Decoding of cache file %s failed: %s", path, e)
            return ClassificationStore.empty(path=path)

    @staticmethod
    def encode(store: ClassificationStore) -> str:
        return json.dumps(store.to_document(), ensure_ascii=False, separators=(",", ":")) + "\n"

    # ── Helpers ─────────────────────────────────────────────────

    @staticmethod
    def _lock(path: Path) -> FileLock:
        return FileLock(f"{path}{LOCK_SUFFIX}", timeout=-1, mode=CACHE_FILE_MODE)


def _create(path: str, flags: int) -> int:
    return os.open(path, flags | os.O_CREAT, CACHE_FILE_MODE)

