"""
CLI commands for the package manifest.

Usage::

    aphadon manifest check
    aphadon manifest check --json
"""

from __future__ import annotations

import json
import sys

import click


@click.group()
def manifest() -> None:
    """Package manifest (packages.yaml) commands."""


@manifest.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def manifest_check(ctx: click.Context, as_json: bool) -> None:
    """Validate packages.yaml."""
    from aphadon.core.use_cases.manifest_check import check_manifest

    result = check_manifest(manifest_path=ctx.obj.get("manifest_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.manifest is not None  # guaranteed when valid
        click.secho("✅ Manifest is valid", fg="green", bold=True)
        click.echo(f"   File: {result.manifest_path or 'bundled packages.yaml'}")
        click.echo(f"   Packages: {len(result.manifest.packages)}")
        click.echo(f"   Tags: {', '.join(result.manifest.all_tags()) or '-'}")
    else:
        click.secho("❌ Manifest errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()
