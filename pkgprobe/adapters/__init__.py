"""Adapters — container runtime bindings and the backend registry.

Public re-exports for convenient access.
"""

from pkgprobe.adapters.base import ContainerDriver, ImageLookupError
from pkgprobe.adapters.mock import MockContainerDriver
from pkgprobe.adapters.registry import DEFAULT_BACKENDS, Backend, BackendRegistry

__all__ = [
    "DEFAULT_BACKENDS",
    "Backend",
    "BackendRegistry",
    "ContainerDriver",
    "ImageLookupError",
    "MockContainerDriver",
]
