"""
CLI commands for cache maintenance.

Usage::

    pkgprobe cache show
    pkgprobe cache show --json
    pkgprobe cache path
    pkgprobe cache reset
"""

from __future__ import annotations

import json
import sys

import click

from pkgprobe.ui.cli.context import build_resolver, resolve_config


@click.group()
def cache() -> None:
    """Classification cache — show, locate, reset."""


@cache.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def show(ctx: click.Context, as_json: bool) -> None:
    """Show cached classifications."""
    store = build_resolver(ctx).store
    document = store.to_document()

    if as_json:
        click.echo(json.dumps({"path": store.path, "valid": store.valid, **document}, indent=2))
        return

    if not store.valid:
        click.secho("⚠️  Cache unavailable — classifications are not remembered", fg="yellow")
        return

    click.secho(f"🗂  {store.path}", fg="cyan", bold=True)
    if not document["ids"]:
        click.echo("   (empty)")
    for bucket, members in sorted(document["ids"].items()):
        click.secho(f"   {bucket} ({len(members)}):", fg="white", bold=True)
        for image_id in members:
            click.echo(f"     • {image_id}")
    click.echo(f"   Remediated: {len(document['outdated'])}")


@cache.command()
@click.pass_context
def path(ctx: click.Context) -> None:
    """Print the cache file location."""
    from pkgprobe.core.persistence.cache_file import CacheFileManager

    config = resolve_config(ctx)
    handle = CacheFileManager(config.cache_file_name, config.cache_dirs).locate_cache_file()
    if handle is None:
        click.secho("⚠️  No usable cache location", fg="yellow", err=True)
        sys.exit(1)
    with handle:
        click.echo(handle.name)


@cache.command()
@click.pass_context
def reset(ctx: click.Context) -> None:
    """Forget all cached classifications and remediation records."""
    build_resolver(ctx).reset()
    if not ctx.obj.get("quiet"):
        click.secho("✅ Cache reset", fg="green")
