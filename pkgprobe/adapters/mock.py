"""
Mock container driver — test double for probes and image lookups.

Used in tests to classify images without a container runtime. Every
probe and lookup is recorded so callers can assert how often the
runtime would have been hit.
"""

from __future__ import annotations

from pkgprobe.adapters.base import ContainerDriver, ImageLookupError


class MockContainerDriver(ContainerDriver):
    """Configurable container driver for testing.

    By default every probe fails and every reference resolves to
    itself. Probe successes and lookup results are configured per
    image.
    """

    def __init__(self, driver_name: str = "mock", available: bool = True):
        self._name = driver_name
        self._available = available
        self._supported: dict[str, set[str]] = {}
        self._image_ids: dict[str, str] = {}
        self._lookup_failures: dict[str, str] = {}
        self._probe_log: list[tuple[str, str]] = []
        self._lookup_log: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def probe_log(self) -> list[tuple[str, str]]:
        """All (image_id, command) pairs this mock has probed."""
        return self._probe_log

    @property
    def probe_count(self) -> int:
        return len(self._probe_log)

    @property
    def lookup_log(self) -> list[str]:
        return self._lookup_log

    def is_available(self) -> bool:
        return self._available

    def set_supported(self, image_id: str, *commands: str) -> None:
        """Make probes of ``image_id`` succeed for the given commands."""
        self._supported.setdefault(image_id, set()).update(commands)

    def set_image_id(self, reference: str, image_id: str) -> None:
        """Resolve ``reference`` to ``image_id``."""
        self._image_ids[reference] = image_id

    def set_lookup_failure(self, reference: str, reason: str = "No such image") -> None:
        """Configure a lookup of ``reference`` to fail."""
        self._lookup_failures[reference] = reason

    def probe(self, image_id: str, command: str) -> bool:
        self._probe_log.append((image_id, command))
        return command in self._supported.get(image_id, set())

    def resolve_image_id(self, reference: str) -> str:
        self._lookup_log.append(reference)
        if reference in self._lookup_failures:
            raise ImageLookupError(reference, self._lookup_failures[reference])
        return self._image_ids.get(reference, reference)

    def reset(self) -> None:
        """Clear call logs and configured responses."""
        self._supported.clear()
        self._image_ids.clear()
        self._lookup_failures.clear()
        self._probe_log.clear()
        self._lookup_log.clear()
