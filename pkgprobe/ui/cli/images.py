"""
CLI commands for image classification and remediation bookkeeping.

Thin wrappers over ``pkgprobe.core.services.classification``.

Usage::

    pkgprobe backend opensuse/leap:15.5
    pkgprobe remediated sha256:4f0b...
    pkgprobe mark-remediated opensuse/leap:15.5 sha256:9a1c... zypper
"""

from __future__ import annotations

import json
import sys

import click

from pkgprobe.ui.cli.context import build_resolver


@click.command()
@click.argument("image_id")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def backend(ctx: click.Context, image_id: str, as_json: bool) -> None:
    """Show which package manager IMAGE_ID uses (probing it if unknown)."""
    result = build_resolver(ctx).resolve(image_id)

    if as_json:
        click.echo(json.dumps({
            "image": image_id,
            "found": result.found,
            "backend": result.backend,
            "supported": result.supported,
        }, indent=2))
    elif result.supported:
        click.secho(f"📦 {image_id}: {result.backend}", fg="green")
    else:
        click.secho(f"⚠️  {image_id}: no supported package manager", fg="yellow")

    if not result.supported:
        sys.exit(1)


@click.command()
@click.argument("image_id")
@click.pass_context
def remediated(ctx: click.Context, image_id: str) -> None:
    """Show whether IMAGE_ID was already updated by this tool."""
    if build_resolver(ctx).is_remediated(image_id):
        click.echo(f"{image_id}: remediated")
    else:
        click.echo(f"{image_id}: not remediated")
        sys.exit(1)


@click.command("mark-remediated")
@click.argument("original")
@click.argument("result_id")
@click.argument("backend_name", metavar="BACKEND")
@click.pass_context
def mark_remediated(ctx: click.Context, original: str, result_id: str, backend_name: str) -> None:
    """Record that ORIGINAL was updated into RESULT_ID using BACKEND."""
    from pkgprobe.adapters.base import ImageLookupError

    try:
        build_resolver(ctx).mark_remediated(original, result_id, backend_name)
    except ImageLookupError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    if not ctx.obj.get("quiet"):
        click.secho(f"✅ {original} → {result_id} ({backend_name})", fg="green")
