"""Container runtime drivers."""

from pkgprobe.adapters.containers.docker import DockerDriver

__all__ = ["DockerDriver"]
