"""
Backend registry — the ordered list of package-manager backends.

A backend is identified by name and detected by a command that only
succeeds inside images shipping that package manager. The registry
keeps registration order: the resolver probes backends in exactly
this order and stops at the first match.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from pydantic import BaseModel

from pkgprobe.core.models.classification import UNCLASSIFIED

logger = logging.getLogger(__name__)


class Backend(BaseModel):
    """A package-manager backend and its detection command."""

    name: str
    detect: str


DEFAULT_BACKENDS: tuple[Backend, ...] = (
    Backend(name="apt", detect="apt-get"),
    Backend(name="zypper", detect="zypper"),
    Backend(name="dnf", detect="dnf -h"),
)


class BackendRegistry:
    """Ordered registry of backends.

    Features:
        - Register/unregister backends by name
        - Deterministic iteration in registration order
        - Lookup by name
    """

    def __init__(self, backends: list[Backend] | tuple[Backend, ...] | None = None):
        self._backends: dict[str, Backend] = {}
        for backend in DEFAULT_BACKENDS if backends is None else backends:
            self.register(backend)

    def register(self, backend: Backend) -> None:
        """Register a backend. Re-registering a name keeps its original position."""
        if backend.name == UNCLASSIFIED:
            raise ValueError(f"'{UNCLASSIFIED}' is reserved for unclassified images")
        if backend.name in self._backends:
            logger.warning("Overwriting existing backend: %s", backend.name)
        self._backends[backend.name] = backend
        logger.debug("Registered backend: %s (detect: %s)", backend.name, backend.detect)

    def unregister(self, name: str) -> None:
        """Remove a backend from the registry."""
        self._backends.pop(name, None)

    def get(self, name: str) -> Backend | None:
        return self._backends.get(name)

    def names(self) -> list[str]:
        """List all registered backend names, in probe order."""
        return list(self._backends)

    def __iter__(self) -> Iterator[Backend]:
        return iter(list(self._backends.values()))

    def __len__(self) -> int:
        return len(self._backends)

    def __contains__(self, name: object) -> bool:
        return name in self._backends
