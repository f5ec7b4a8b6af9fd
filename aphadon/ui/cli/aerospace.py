"""
CLI commands for the AeroSpace window manager config (macOS).

Usage::

    aphadon aerospace build
    aphadon aerospace build --dir ~/.config/aerospace --reload
"""

from __future__ import annotations

import sys
from pathlib import Path

import click


@click.group()
def aerospace() -> None:
    """AeroSpace config assembly."""


@aerospace.command("build")
@click.option(
    "--dir", "config_dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory holding aerospace.main.toml (default: ~/.config/aerospace).",
)
@click.option("--reload", "reload_config", is_flag=True, help="Run 'aerospace reload-config'.")
def aerospace_build(config_dir: str | None, reload_config: bool) -> None:
    """Write aerospace.toml from the main and machine-local parts."""
    from aphadon.core.services.aerospace import (
        DEFAULT_CONFIG_DIR,
        build_aerospace_config,
        reload_aerospace,
    )

    directory = Path(config_dir).expanduser() if config_dir else DEFAULT_CONFIG_DIR.expanduser()
    result = build_aerospace_config(directory)
    if not result["ok"]:
        click.secho(f"❌ {result['error']}", fg="red")
        sys.exit(1)

    suffix = " (with machine-specific rules)" if result["local"] else ""
    click.secho(f"✅ Wrote {result['path']}{suffix}", fg="green")

    if reload_config:
        reloaded = reload_aerospace()
        if not reloaded["ok"]:
            click.secho(f"❌ Reload failed: {reloaded['error']}", fg="red")
            sys.exit(1)
        click.secho("✅ AeroSpace reloaded", fg="green")
