"""pkgprobe — classify container images by package manager, with a shared cache."""

__version__ = "0.1.0"
