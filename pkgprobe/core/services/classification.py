"""
Classification resolver — which backend handles an image, memoized.

Answers "what package manager does this image use" from the shared
cache when it can, and by probing the image otherwise. Every probe
outcome (including "no backend applies") is recorded and written back,
so an image is probed at most once per host.

Probe failures are never errors. The only error that leaves this
module is ImageLookupError from mark_remediated().
"""

from __future__ import annotations

import logging
from typing import NamedTuple

from pkgprobe.adapters.base import ContainerDriver
from pkgprobe.adapters.registry import BackendRegistry
from pkgprobe.core.config.loader import PkgprobeConfig
from pkgprobe.core.models.classification import UNCLASSIFIED, ClassificationStore
from pkgprobe.core.persistence.cache_file import CacheFileManager

logger = logging.getLogger(__name__)


class Resolution(NamedTuple):
    """Outcome of resolve().

    ``found`` is True when the image is known (cached or just probed
    successfully). ``backend`` is the backend name, ``UNCLASSIFIED`` for
    a cached image no backend handles, or "" when nothing matched.
    """

    found: bool
    backend: str

    @property
    def supported(self) -> bool:
        """Whether a real backend handles the image."""
        return self.found and self.backend not in ("", UNCLASSIFIED)


class ClassificationResolver:
    """Memoized image → backend classification.

    The resolver owns its store for the lifetime of the process; the
    store is only shared with other processes through write-back.
    """

    def __init__(
        self,
        store: ClassificationStore,
        files: CacheFileManager,
        driver: ContainerDriver,
        backends: BackendRegistry | None = None,
        reset_replaces: bool = True,
    ):
        self._store = store
        self._files = files
        self._driver = driver
        self._backends = backends if backends is not None else BackendRegistry()
        self._reset_replaces = reset_replaces

    @classmethod
    def from_config(
        cls,
        config: PkgprobeConfig,
        driver: ContainerDriver,
    ) -> ClassificationResolver:
        """Load the shared cache and build a resolver from settings."""
        files = CacheFileManager(config.cache_file_name, config.cache_dirs)
        return cls(
            store=files.load(),
            files=files,
            driver=driver,
            backends=BackendRegistry(config.backends),
            reset_replaces=config.reset_replaces,
        )

    @property
    def store(self) -> ClassificationStore:
        return self._store

    @property
    def backends(self) -> BackendRegistry:
        return self._backends

    def resolve(self, image_id: str) -> Resolution:
        """Classify ``image_id``, probing only on a cache miss.

        With caching disabled the image is probed on every call and
        nothing is recorded.
        """
        if self._store.valid:
            bucket = self._store.find(image_id)
            if bucket is not None:
                logger.debug("Cache hit: %s → %s", image_id, bucket)
                return Resolution(True, bucket)

        backend = self._probe(image_id)

        if not self._store.valid:
            return Resolution(True, backend) if backend else Resolution(False, "")

        self._store.add(backend or UNCLASSIFIED, image_id)
        self._files.write_back(self._store)
        if backend:
            return Resolution(True, backend)
        return Resolution(False, "")

    def is_supported(self, image_id: str) -> bool:
        return self.resolve(image_id).supported

    def is_remediated(self, image_id: str) -> bool:
        """Whether ``image_id`` was already patched or updated by this tool."""
        return self._store.valid and self._store.is_remediated(image_id)

    def mark_remediated(self, original_ref: str, result_id: str, backend: str) -> None:
        """Record an update: ``original_ref`` is now outdated, ``result_id`` uses ``backend``.

        The two records are written back independently.

        Raises:
            ImageLookupError: If ``original_ref`` cannot be resolved to an id.
        """
        original_id = self._driver.resolve_image_id(original_ref)

        if not self._store.valid:
            logger.debug("Caching disabled — not recording update of %s", original_ref)
            return

        if self._store.add_remediated(original_id):
            self._files.write_back(self._store)
            logger.info("Recorded %s as remediated", original_id)

        added = self._store.add(backend, result_id)
        if added:
            self._files.write_back(self._store)
        current = self._store.find(result_id)
        if current != backend:
            logger.debug("%s stays classified as %s, not %s", result_id, current, backend)
        elif added:
            logger.info("Classified %s as %s", result_id, backend)

    def reset(self) -> None:
        """Forget every classification and remediation record."""
        self._store.clear()
        self._files.write_back(self._store, replace=self._reset_replaces)
        logger.info("Classification cache reset")

    # ── Helpers ─────────────────────────────────────────────────

    def _probe(self, image_id: str) -> str:
        """Probe backends in registry order; return the first match or ""."""
        for backend in self._backends:
            if self._driver.probe(image_id, backend.detect):
                logger.info("Image %s uses %s", image_id, backend.name)
                return backend.name
            logger.debug("Image %s: '%s' not available", image_id, backend.detect)
        logger.info("Image %s is not handled by any backend", image_id)
        return ""
