"""
Aphadon dotfiles installer — CLI entrypoint.

Usage:
    aphadon --help
    aphadon install --profile core,dev --exclude gui
    aphadon plan --platform ubuntu
    install-dotfiles --profile core
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from aphadon import __version__
from aphadon.core.observability.logging_config import setup_logging
from aphadon.core.services.selection import COMMON_PROFILES

LOGO = r"""
    _    ____  _   _    _    ____   ___  _   _
   / \  |  _ \| | | |  / \  |  _ \ / _ \| \ | |
  / _ \ | |_) | |_| | / _ \ | | | | | | |  \| |
 / ___ \|  __/|  _  |/ ___ \| |_| | |_| | |\  |
/_/   \_\_|   |_| |_/_/   \_\____/ \___/|_| \_|
                  A  P  H  A  D  O  N
"""

TAG_HELP = {
    "core": "Essential utilities (git, curl, neovim, tmux, yazi)",
    "dev": "Development tools (lazygit, ripgrep, fd, bat, eza)",
    "desktop": "Desktop applications",
    "gui": "GUI applications (requires display)",
    "server": "Server-specific tools (docker, etc.)",
    "optional": "Nice-to-have packages",
}

_INSTALL_EPILOG = "\b\nCommon profiles:\n" + "\n".join(
    f"  {name:<20} {desc}" for name, desc in COMMON_PROFILES.items()
) + "\n\n\b\nTags:\n" + "\n".join(
    f"  {name:<10} {desc}" for name, desc in TAG_HELP.items()
) + "\n\n\b\nExamples:\n" + "\n".join((
    "  install-dotfiles                                  # everything",
    "  install-dotfiles --profile core,dev               # core + dev tools",
    "  install-dotfiles --exclude gui                    # everything but GUI apps",
    "  install-dotfiles --profile core,dev --exclude optional",
))


def _setup_logging(ctx: click.Context, verbose: bool, quiet: bool, debug: bool) -> None:
    """Configure logging once per process (group or standalone command)."""
    ctx.ensure_object(dict)
    if ctx.obj.get("logging_ready"):
        return

    if debug:
        level = "DEBUG"
    elif quiet:
        level = "ERROR"
    elif verbose:
        level = "INFO"
    else:
        level = os.environ.get("APHADON_LOG_LEVEL", "INFO")

    setup_logging(
        level=level,
        log_file=os.environ.get("APHADON_LOG_FILE"),
        log_file_level=os.environ.get("APHADON_LOG_FILE_LEVEL"),
    )
    ctx.obj["logging_ready"] = True


@click.group()
@click.version_option(version=__version__, prog_name="aphadon")
@click.option("--verbose", "-v", is_flag=True, help="Show command output for each step.")
@click.option("--quiet", "-q", is_flag=True, help="Only log errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--manifest",
    "-m",
    "manifest_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to packages.yaml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    manifest_path: str | None,
) -> None:
    """Aphadon — terminal dotfiles installer."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["manifest_path"] = Path(manifest_path) if manifest_path else None
    _setup_logging(ctx, verbose, quiet, debug)


def _echo_receipt_line(label: str, receipt, verbose: bool) -> None:
    timing = f" ({receipt.duration_ms}ms)" if receipt.duration_ms else ""
    if receipt.ok:
        click.secho(f"   ✓ {label}", fg="green", nl=False)
        click.echo(timing)
        if verbose and receipt.output:
            for line in receipt.output.split("\n")[:10]:
                click.echo(f"     │ {line}")
    elif receipt.failed:
        click.secho(f"   ✗ {label}", fg="red", nl=False)
        click.echo(timing)
        if receipt.error:
            for line in receipt.error.split("\n")[:5]:
                click.echo(f"     │ {line}")
    else:
        click.secho(f"   ⊘ {label} ", fg="yellow", nl=False)
        click.echo(f"({receipt.output})")


def _echo_report(title: str, report, verbose: bool) -> None:
    click.secho(f"\n⚡ {title}", fg="cyan", bold=True)
    if report.package_receipts:
        for name, receipts in report.package_receipts.items():
            for receipt in receipts:
                _echo_receipt_line(name, receipt, verbose)
    else:
        for receipt in report.receipts:
            _echo_receipt_line(receipt.action_id.rsplit(":", 1)[-1], receipt, verbose)

    click.echo()
    status_color = {"ok": "green", "partial": "yellow", "failed": "red"}.get(
        report.status, "white"
    )
    click.secho(
        f"   Result: {report.succeeded} ok, {report.skipped} skipped, "
        f"{report.failed} failed",
        fg=status_color,
        bold=True,
    )


def _prompt_shell() -> str:
    """Interactive shell menu; zsh without a terminal."""
    from aphadon.core.services.post_install import SHELL_MENU, normalize_shell_choice

    if not sys.stdin.isatty():
        return normalize_shell_choice("zsh")

    click.secho("\nWhich shell would you like to use?", fg="blue")
    for key, (_shell, label) in SHELL_MENU.items():
        click.echo(f"  {key}) {label}")
    answer = click.prompt("Enter choice [1-3]", default="1", show_default=False)
    return normalize_shell_choice(answer)


def _resolve_settings_or_exit(
    profile: str | None,
    exclude: str | None,
    shell: str | None,
):
    from aphadon.core.config.loader import ConfigError
    from aphadon.core.config.profile import resolve_settings

    try:
        return resolve_settings(profile, exclude, shell)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


_profile_option = click.option(
    "--profile", "-p", default=None,
    help="Comma-separated tags to install (default: full).",
)
_exclude_option = click.option(
    "--exclude", "-e", default=None,
    help="Comma-separated tags to exclude.",
)
_platform_option = click.option(
    "--platform", "platform_id", default=None,
    help="Target this platform id instead of detecting it (e.g. ubuntu).",
)
_shell_option = click.option(
    "--shell", type=click.Choice(["zsh", "bash", "skip"]), default=None,
    help="Shell to configure (default: ask).",
)
_json_option = click.option(
    "--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.",
)


@cli.command(epilog=_INSTALL_EPILOG)
@_profile_option
@_exclude_option
@_platform_option
@_shell_option
@click.option("--dry-run", is_flag=True, help="Plan and validate, execute nothing.")
@click.option("--mock", is_flag=True, help="Use mock adapter (no real execution).")
@click.option("--no-post-install", is_flag=True, help="Skip post-install configuration.")
@click.option("--save-profile", is_flag=True, help="Remember these settings in ~/.install-profile.")
@_json_option
@click.pass_context
def install(
    ctx: click.Context,
    profile: str | None,
    exclude: str | None,
    platform_id: str | None,
    shell: str | None,
    dry_run: bool,
    mock: bool,
    no_post_install: bool,
    save_profile: bool,
    as_json: bool,
) -> None:
    """Install packages and dotfiles for this machine."""
    from aphadon.core.config.profile import save_profile_file
    from aphadon.core.use_cases.install import run_install

    _setup_logging(ctx, False, False, False)
    quiet = ctx.obj.get("quiet", False)
    verbose = ctx.obj.get("verbose", False)

    if not (as_json or quiet):
        click.secho(LOGO, fg="cyan")

    settings = _resolve_settings_or_exit(profile, exclude, shell)
    if save_profile:
        save_profile_file(settings)

    result = run_install(
        settings,
        manifest_path=ctx.obj.get("manifest_path"),
        platform_id=platform_id,
        dry_run=dry_run,
        mock_mode=mock,
        post_install=not no_post_install,
        shell_chooser=None if as_json else _prompt_shell,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if result.report:
        mode_label = "[dry-run] " if dry_run else "[mock] " if mock else ""
        assert result.platform is not None
        _echo_report(f"{mode_label}install — {result.platform.label}", result.report, verbose)
    if result.post_report:
        _echo_report("post-install", result.post_report, verbose)

    if result.error:
        click.secho(f"\n❌ {result.error}", fg="red")
        sys.exit(1)

    if result.post_report and not quiet:
        click.secho("\nNext steps:", bold=True)
        for line in result.next_steps:
            click.echo(f"   {line}")

    click.echo()
    if not result.ok:
        click.secho("❌ Installation finished with errors", fg="red", bold=True)
        sys.exit(1)

    click.secho("✅ Installation complete! 🎉", fg="green", bold=True)
    if not quiet:
        where = "terminal" if result.platform and result.platform.is_macos else "shell"
        click.echo(f"   You may need to restart your {where} or run: source ~/.zshrc")
    click.echo()


@cli.command()
@_profile_option
@_exclude_option
@_platform_option
@_json_option
@click.pass_context
def plan(
    ctx: click.Context,
    profile: str | None,
    exclude: str | None,
    platform_id: str | None,
    as_json: bool,
) -> None:
    """Show what install would do, without executing anything."""
    from aphadon.core.use_cases.plan import preview_install

    settings = _resolve_settings_or_exit(profile, exclude, None)
    result = preview_install(
        settings.selection,
        manifest_path=ctx.obj.get("manifest_path"),
        platform_id=platform_id,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    assert result.platform is not None and result.selection is not None
    click.secho(f"\n📋 Plan — {result.platform.label}", fg="cyan", bold=True)
    click.echo(
        f"   Family: {result.platform.family} | "
        f"Package manager: {result.platform.package_manager} | "
        f"Profile: {result.selection.profile_label}"
    )
    if result.selection.exclude:
        click.echo(f"   Excluding: {', '.join(result.selection.exclude)}")
    click.echo()

    for pkg in result.packages:
        if pkg.skipped:
            click.secho(f"   ⊘ {pkg.name} ", fg="yellow", nl=False)
            click.echo(f"({pkg.skip_reason})")
            continue
        method = f" [{pkg.method}]" if pkg.method else ""
        marker_color = "yellow" if pkg.kind in ("skip", "unsupported", "manual") else "green"
        click.secho(f"   • {pkg.name}", fg=marker_color, nl=False)
        click.echo(f" → {pkg.package}{method}")

    if result.filtered:
        click.echo()
        click.secho(f"   Not selected: {len(result.filtered)}", fg="white", bold=True)
        for name, reason in result.filtered.items():
            click.echo(f"     – {name} ({reason})")

    total = result.plan.total_actions if result.plan else 0
    click.echo(f"\n   Actions: {total}\n")


@cli.command()
@_json_option
@click.pass_context
def tags(ctx: click.Context, as_json: bool) -> None:
    """List manifest tags and how many packages carry each."""
    from aphadon.core.config.loader import ConfigError, load_manifest

    try:
        manifest, _path = load_manifest(ctx.obj.get("manifest_path"))
    except ConfigError as e:
        if as_json:
            click.echo(json.dumps({"error": str(e)}, indent=2))
        else:
            click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    counts = manifest.tag_counts()
    if as_json:
        click.echo(json.dumps({"tags": counts}, indent=2))
        return

    click.secho("\n🏷️  Tags", fg="cyan", bold=True)
    for tag, count in counts.items():
        desc = f"  {TAG_HELP[tag]}" if tag in TAG_HELP else ""
        click.echo(f"   {tag:<10} {count:>3}{desc}")
    untagged = sum(1 for e in manifest.packages.values() if not e.tags)
    click.echo(f"\n   Untagged (always installed): {untagged}\n")


@cli.command("post-install")
@_shell_option
@_platform_option
@click.option("--dry-run", is_flag=True, help="Plan and validate, execute nothing.")
@click.option("--mock", is_flag=True, help="Use mock adapter (no real execution).")
@_json_option
@click.pass_context
def post_install(
    ctx: click.Context,
    shell: str | None,
    platform_id: str | None,
    dry_run: bool,
    mock: bool,
    as_json: bool,
) -> None:
    """Symlink dotfiles, configure the shell and install TPM."""
    from aphadon.core.use_cases.install import run_post_install

    settings = _resolve_settings_or_exit(None, None, shell)
    result = run_post_install(
        settings,
        manifest_path=ctx.obj.get("manifest_path"),
        platform_id=platform_id,
        dry_run=dry_run,
        mock_mode=mock,
        shell_chooser=None if as_json else _prompt_shell,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    assert result.post_report is not None
    _echo_report("post-install", result.post_report, ctx.obj.get("verbose", False))
    click.secho("\nNext steps:", bold=True)
    for line in result.next_steps:
        click.echo(f"   {line}")
    click.echo()
    if not result.ok:
        sys.exit(1)


@cli.command()
@_json_option
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show the last install run and per-package state."""
    from aphadon.core.use_cases.status import get_status

    result = get_status(manifest_path=ctx.obj.get("manifest_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    click.secho(f"\n📋 {result.dotfiles_root}", fg="cyan", bold=True)
    if not result.has_state or result.state is None:
        click.echo("   No install recorded yet. Run: aphadon install\n")
        return

    state = result.state
    click.echo(f"   Platform: {state.platform_id or '?'} | Profile: {state.profile}")
    if state.exclude:
        click.echo(f"   Excluding: {', '.join(state.exclude)}")

    for label, op in (
        ("Last install", state.last_operation),
        ("Last post-install", state.last_post_install),
    ):
        if not op.operation_id:
            continue
        click.echo()
        click.secho(f"   {label}:", fg="white", bold=True)
        status_color = {"ok": "green", "partial": "yellow", "failed": "red"}.get(
            op.status, "white"
        )
        click.echo(f"     {op.automation} — ", nl=False)
        click.secho(op.status, fg=status_color)
        click.echo(
            f"     {op.actions_succeeded} ok, {op.actions_skipped} skipped, "
            f"{op.actions_failed} failed"
        )
        if op.ended_at:
            click.echo(f"     at {op.ended_at}")

    if state.packages:
        click.echo()
        click.secho(f"   Packages: {len(state.packages)}", fg="white", bold=True)
        for name, ps in state.packages.items():
            marker, color = {
                "ok": ("✓", "green"),
                "failed": ("✗", "red"),
            }.get(ps.last_action_status or "", ("⊘", "yellow"))
            click.secho(f"     {marker} {name}", fg=color, nl=False)
            via = f" via {ps.method}" if ps.method else ""
            click.echo(via)
            if ps.last_error:
                click.echo(f"       │ {ps.last_error}")
    click.echo()


@cli.command()
@click.option("-n", "count", default=10, type=int, help="Number of entries.")
@_json_option
@click.pass_context
def history(ctx: click.Context, count: int, as_json: bool) -> None:
    """Show recent install runs from the audit ledger."""
    from aphadon.core.config.loader import ConfigError
    from aphadon.core.use_cases.status import get_history

    try:
        result = get_history(manifest_path=ctx.obj.get("manifest_path"), n=count)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if not result.entries:
        click.echo("No install history yet.")
        return

    click.secho(f"\n📜 History ({len(result.entries)})", fg="cyan", bold=True)
    for entry in result.entries:
        color = {"ok": "green", "partial": "yellow", "failed": "red"}.get(entry.status, "white")
        click.echo(f"   {entry.timestamp[:19]}  {entry.automation:<13}", nl=False)
        click.secho(f"{entry.status:<8}", fg=color, nl=False)
        click.echo(
            f" {entry.actions_succeeded}/{entry.actions_total} ok"
            + (f"  failed: {', '.join(entry.failed_packages)}" if entry.failed_packages else "")
        )
    click.echo()


# ── Register sub-command groups from aphadon/ui/cli/ ──────────────

from aphadon.ui.cli.aerospace import aerospace
from aphadon.ui.cli.manifest import manifest

cli.add_command(manifest)
cli.add_command(aerospace)


if __name__ == "__main__":
    cli()
