"""
pkgprobe — CLI entrypoint.

Usage:
    python -m pkgprobe.main --help
    python -m pkgprobe.main backend opensuse/leap:15.5
    python -m pkgprobe.main cache show
"""

from __future__ import annotations

import os
from pathlib import Path

import click

from pkgprobe import __version__
from pkgprobe.core.observability.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="pkgprobe")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to pkgprobe.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """pkgprobe — classify container images by package manager."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("PKGPROBE_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("PKGPROBE_LOG_FILE"),
        log_file_level=os.environ.get("PKGPROBE_LOG_FILE_LEVEL"),
    )


# ── Sub-commands ────────────────────────────────────────────────

from pkgprobe.ui.cli.cache import cache
from pkgprobe.ui.cli.images import backend, mark_remediated, remediated

cli.add_command(backend)
cli.add_command(remediated)
cli.add_command(mark_remediated)
cli.add_command(cache)


if __name__ == "__main__":
    cli()
