"""
Container driver base — the contract between the cache and a container runtime.

The classification cache never talks to a container runtime directly.
It needs exactly two things from one:

    - probe: does a command succeed inside a throwaway container
      built from an image?
    - resolve_image_id: what is the identifier of an image reference?

Probing is a query, not an operation: a failing probe means "this
backend does not apply" and is reported as False, never raised.
Lookup failures are real errors and raise ImageLookupError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ImageLookupError(Exception):
    """Raised when an image reference cannot be resolved to an identifier."""

    def __init__(self, reference: str, reason: str = ""):
        self.reference = reference
        self.reason = reason
        message = f"Cannot resolve image '{reference}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ContainerDriver(ABC):
    """Abstract base class for container runtime bindings.

    To add a runtime:
        1. Subclass ContainerDriver
        2. Implement name, is_available, probe, resolve_image_id
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The driver identifier (e.g., 'docker', 'mock')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the runtime CLI exists. Should be fast and never raise."""

    @abstractmethod
    def probe(self, image_id: str, command: str) -> bool:
        """Run ``command`` in an ephemeral container from ``image_id``.

        The container is created and removed by this call.

        Returns:
            True if the command exited with status 0. Any failure,
            including runtime errors and timeouts, returns False.
        """

    @abstractmethod
    def resolve_image_id(self, reference: str) -> str:
        """Resolve an image reference (name:tag or id) to its identifier.

        Raises:
            ImageLookupError: If the reference cannot be resolved.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
