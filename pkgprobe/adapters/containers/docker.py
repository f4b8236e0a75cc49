"""
Docker driver — probes and image lookups through the docker CLI.

Uses the docker CLI — never the Docker API directly. Any CLI that is
argument-compatible with docker (e.g. podman) can be configured as the
runtime binary.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time

from pkgprobe.adapters.base import ContainerDriver, ImageLookupError

logger = logging.getLogger(__name__)


class DockerDriver(ContainerDriver):
    """Container driver backed by the docker CLI.

    Probes run ``<runtime> run --rm --entrypoint /bin/sh <image> -c <command>``
    so the container is torn down as soon as the command exits.
    """

    def __init__(self, runtime: str = "docker", timeout: int = 300):
        self._runtime = runtime
        self._timeout = timeout

    @property
    def name(self) -> str:
        return self._runtime

    def is_available(self) -> bool:
        return shutil.which(self._runtime) is not None

    def probe(self, image_id: str, command: str) -> bool:
        args = ["run", "--rm", "--entrypoint", "/bin/sh", image_id, "-c", command]
        logger.debug("Probing %s with '%s'", image_id, command)
        start = time.monotonic()
        try:
            result = self._run(args, timeout=self._timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Probe '%s' on %s timed out after %ss", command, image_id, self._timeout)
            return False
        except OSError as e:
            logger.warning("Cannot run %s: %s", self._runtime, e)
            return False

        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.debug(
            "Probe '%s' on %s exited %d (%dms)",
            command, image_id, result.returncode, elapsed_ms,
        )
        return result.returncode == 0

    def resolve_image_id(self, reference: str) -> str:
        args = ["image", "inspect", "--format", "{{.Id}}", reference]
        try:
            result = self._run(args, timeout=30)
        except subprocess.TimeoutExpired as e:
            raise ImageLookupError(reference, "lookup timed out") from e
        except OSError as e:
            raise ImageLookupError(reference, str(e)) from e

        if result.returncode != 0:
            raise ImageLookupError(
                reference,
                result.stderr.strip() or f"{self._runtime} image inspect failed",
            )

        image_id = result.stdout.strip()
        if not image_id:
            raise ImageLookupError(reference, "no image found")
        return image_id

    # ── Helpers ─────────────────────────────────────────────────

    def _run(self, args: list[str], timeout: int) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            [self._runtime, *args],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
