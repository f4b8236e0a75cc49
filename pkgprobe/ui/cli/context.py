"""
Shared CLI plumbing — configuration and resolver construction.

Commands stay thin: they build a resolver here and format its answers.
"""

from __future__ import annotations

import sys

import click

from pkgprobe.core.config.loader import ConfigError, PkgprobeConfig, load_config
from pkgprobe.core.services.classification import ClassificationResolver


def resolve_config(ctx: click.Context) -> PkgprobeConfig:
    """Load configuration, exiting with status 2 if it is invalid."""
    try:
        return load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(2)


def build_resolver(ctx: click.Context) -> ClassificationResolver:
    """Load the shared cache and wire up a resolver.

    Tests inject a container driver through ``ctx.obj["driver"]``.
    """
    from pkgprobe.adapters.containers.docker import DockerDriver

    config = resolve_config(ctx)
    driver = ctx.obj.get("driver") or DockerDriver(
        runtime=config.runtime,
        timeout=config.probe_timeout,
    )
    return ClassificationResolver.from_config(config, driver)
