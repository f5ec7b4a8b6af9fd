"""
Install use case — provision this machine from the manifest.

The top-level orchestrator: loads the manifest, detects the platform,
plans bootstrap + packages + finalize, executes through the adapter
registry, runs post-install, and persists state and audit entries.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from aphadon.adapters.registry import AdapterRegistry
from aphadon.core.config.loader import ConfigError, load_manifest, resolve_dotfiles_root
from aphadon.core.config.profile import InstallSettings
from aphadon.core.engine.executor import (
    ExecutionPlan,
    ExecutionReport,
    execute_plan,
    generate_operation_id,
    write_audit_entries,
)
from aphadon.core.models.manifest import Manifest
from aphadon.core.models.platform import Platform
from aphadon.core.models.state import InstallState
from aphadon.core.persistence.audit import AuditWriter
from aphadon.core.persistence.state_file import default_state_path, load_state, save_state
from aphadon.core.services.planning import build_install_plan
from aphadon.core.services.platform import (
    UnsupportedPlatformError,
    detect_platform,
    parse_platform,
)
from aphadon.core.services.post_install import build_post_install_plan, next_steps

logger = logging.getLogger(__name__)

HOMEBREW_HINT = (
    'Or run: /bin/bash -c "$(curl -fsSL '
    'https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh)"'
)


@dataclass
class InstallResult:
    """Result of an install run."""

    platform: Platform | None = None
    settings: InstallSettings | None = None
    manifest_path: Path | None = None
    dotfiles_root: Path | None = None
    plan: ExecutionPlan | None = None
    report: ExecutionReport | None = None
    post_report: ExecutionReport | None = None
    shell_choice: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        if self.error:
            return False
        reports = [r for r in (self.report, self.post_report) if r is not None]
        return all(r.all_ok for r in reports)

    @property
    def next_steps(self) -> list[str]:
        return next_steps(self.shell_choice or "skip")

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            if self.platform is None:
                return result

        if self.platform:
            result["platform"] = self.platform.model_dump(mode="json")
        if self.settings:
            result["profile"] = self.settings.profile
            result["exclude"] = self.settings.exclude_tags
        result["manifest"] = str(self.manifest_path) if self.manifest_path else "bundled"
        result["dotfiles_root"] = str(self.dotfiles_root) if self.dotfiles_root else None
        if self.plan:
            result["filtered"] = self.plan.filtered
        if self.report:
            result["report"] = self.report.to_dict()
        if self.post_report:
            result["post_install"] = self.post_report.to_dict()
            result["shell_choice"] = self.shell_choice
        result["ok"] = self.ok
        return result


def build_registry(
    mock_mode: bool = False,
    installers: Mapping[str, Any] | None = None,
) -> AdapterRegistry:
    """Registry with every install adapter registered."""
    from aphadon.adapters.packages.function import FunctionAdapter
    from aphadon.adapters.packages.managers import SUPPORTED_MANAGERS, PackageManagerAdapter
    from aphadon.adapters.packages.notice import NoticeAdapter
    from aphadon.adapters.packages.repos import RepositoryAdapter
    from aphadon.adapters.shell.command import ShellCommandAdapter
    from aphadon.adapters.shell.filesystem import FilesystemAdapter

    registry = AdapterRegistry(mock_mode=mock_mode)
    for pm in SUPPORTED_MANAGERS:
        registry.register(PackageManagerAdapter(pm))
    registry.register(RepositoryAdapter())
    registry.register(FunctionAdapter(installers))
    registry.register(NoticeAdapter())
    registry.register(ShellCommandAdapter())
    registry.register(FilesystemAdapter())
    return registry


def resolve_platform(platform_id: str | None = None) -> Platform:
    """Explicit platform (``--platform``) or the detected one.

    Raises:
        UnsupportedPlatformError: Detection failed or unknown id.
    """
    if platform_id:
        return parse_platform(platform_id)
    return detect_platform()


def check_preconditions(
    platform: Platform,
    which: Callable[[str], str | None] = shutil.which,
) -> str | None:
    """Error message when the platform cannot be provisioned at all."""
    if platform.is_macos and which("brew") is None:
        logger.error("Homebrew is not installed!")
        logger.info("Install Homebrew from: https://brew.sh")
        logger.info(HOMEBREW_HINT)
        return "Homebrew is not installed (https://brew.sh)"
    return None


def record_report(
    state: InstallState,
    plan: ExecutionPlan,
    report: ExecutionReport,
) -> None:
    """Fold a report into the persisted state."""
    if report.automation == "post-install":
        op = state.last_post_install
    else:
        op = state.last_operation
    op.operation_id = report.operation_id
    op.automation = report.automation
    op.started_at = report.started_at
    op.ended_at = report.ended_at
    op.status = report.status
    op.actions_total = report.total
    op.actions_succeeded = report.succeeded
    op.actions_failed = report.failed
    op.actions_skipped = report.skipped

    for name, receipts in report.package_receipts.items():
        actions = plan.package_actions.get(name, [])
        main = actions[-1] if actions else None
        failed = next((r for r in receipts if r.failed), None)
        state.set_package_state(
            name,
            installed_as=" ".join(main.params.get("packages", [])) if main else "",
            method=main.adapter if main else "",
            last_action_at=receipts[-1].ended_at,
            last_action_status=report.package_status(name),
            last_error=failed.error if failed else None,
        )


def _persist(
    root: Path,
    plan: ExecutionPlan,
    report: ExecutionReport,
    platform: Platform,
    settings: InstallSettings,
    dry_run: bool,
    mock_mode: bool,
) -> None:
    write_audit_entries(
        report,
        AuditWriter(dotfiles_root=root),
        platform=platform.id,
        profile=settings.profile,
        exclude=settings.exclude or None,
        dry_run=dry_run or None,
        mock=mock_mode or None,
    )
    # Previews don't describe the machine
    if dry_run or mock_mode:
        return

    state_path = default_state_path(root)
    state = load_state(state_path)
    state.platform_id = platform.id
    state.profile = settings.profile
    state.exclude = settings.exclude_tags
    if settings.shell_choice:
        state.shell_choice = settings.shell_choice
    record_report(state, plan, report)
    try:
        save_state(state, state_path)
    except OSError as e:
        logger.warning("State not saved: %s", e)


def run_install(
    settings: InstallSettings,
    manifest_path: Path | None = None,
    platform_id: str | None = None,
    dry_run: bool = False,
    mock_mode: bool = False,
    post_install: bool = True,
    registry: AdapterRegistry | None = None,
    home: Path | None = None,
    shell_chooser: Callable[[], str] | None = None,
    installers: Mapping[str, Any] | None = None,
) -> InstallResult:
    """Install the selected manifest packages on this machine.

    Args:
        settings: Profile, exclusions and shell choice.
        manifest_path: Explicit manifest (default: searched, then bundled).
        platform_id: Target this platform instead of detecting it.
        dry_run: Plan and validate, execute nothing.
        mock_mode: Use mock adapter responses.
        post_install: Run post-install after the packages.
        registry: Pre-configured adapter registry.
        home: Home directory to configure (default: ``~``).
        shell_chooser: Asked for the shell when the settings have none.
        installers: Custom installer registry (default: built-in).

    Returns:
        InstallResult; ``error`` is set when nothing could be run.
    """
    result = InstallResult(settings=settings)
    home = home or Path.home()

    # ── Load manifest ────────────────────────────────────────────
    try:
        manifest, result.manifest_path = load_manifest(manifest_path)
    except ConfigError as e:
        result.error = str(e)
        return result
    root = resolve_dotfiles_root(result.manifest_path)
    result.dotfiles_root = root

    # ── Detect platform ──────────────────────────────────────────
    try:
        platform = resolve_platform(platform_id)
    except UnsupportedPlatformError as e:
        result.error = str(e)
        return result
    result.platform = platform

    logger.info("Starting terminal configuration installation...")
    if settings.profile != "full":
        logger.info("Installation profile: %s", settings.profile)
    if settings.exclude:
        logger.info("Excluding tags: %s", settings.exclude)
    logger.info("Detected OS: %s (%s family, %s)", platform.label, platform.family, platform.arch)

    if not (dry_run or mock_mode):
        error = check_preconditions(platform)
        if error:
            result.error = error
            return result

    # ── Plan + execute ───────────────────────────────────────────
    if registry is None:
        registry = build_registry(mock_mode=mock_mode, installers=installers)

    operation_id = generate_operation_id()
    plan = build_install_plan(
        manifest, platform, settings.selection,
        installers=installers, operation_id=operation_id,
    )
    result.plan = plan
    logger.info("Installing %d packages on %s", len(plan.package_actions), platform.id)

    report = execute_plan(
        plan, registry,
        dotfiles_root=str(root), home=str(home), platform=platform, dry_run=dry_run,
    )
    result.report = report
    _persist(root, plan, report, platform, settings, dry_run, mock_mode)

    if report.failed_packages:
        logger.error("Failed packages: %s", ", ".join(report.failed_packages))
    if report.aborted:
        result.error = "Installation aborted: a required system step failed"
        return result
    logger.info("Package installation complete!")

    # ── Post-install ─────────────────────────────────────────────
    if post_install:
        logger.info("Running post-installation configuration...")
        result.shell_choice = settings.shell_choice or (
            shell_chooser() if shell_chooser else "zsh"
        )
        result.post_report = run_post_install_plan(
            manifest, root, home, result.shell_choice, registry,
            platform=platform, settings=settings,
            dry_run=dry_run, mock_mode=mock_mode,
            operation_id=f"{operation_id}-post",
        )

    return result


def run_post_install_plan(
    manifest: Manifest,
    root: Path,
    home: Path,
    shell_choice: str,
    registry: AdapterRegistry,
    platform: Platform,
    settings: InstallSettings,
    dry_run: bool = False,
    mock_mode: bool = False,
    operation_id: str | None = None,
) -> ExecutionReport:
    """Build and execute the post-install plan, then persist it."""
    logger.info("Starting post-installation configuration...")
    plan = build_post_install_plan(
        manifest, root, home, shell_choice, operation_id=operation_id,
    )
    report = execute_plan(
        plan, registry,
        dotfiles_root=str(root), home=str(home), platform=platform, dry_run=dry_run,
    )
    _persist(root, plan, report, platform, settings, dry_run, mock_mode)
    logger.info("Post-installation complete!")
    return report


def run_post_install(
    settings: InstallSettings,
    manifest_path: Path | None = None,
    platform_id: str | None = None,
    dry_run: bool = False,
    mock_mode: bool = False,
    registry: AdapterRegistry | None = None,
    home: Path | None = None,
    shell_chooser: Callable[[], str] | None = None,
) -> InstallResult:
    """Run post-install on its own."""
    result = InstallResult(settings=settings)
    home = home or Path.home()
    try:
        manifest, result.manifest_path = load_manifest(manifest_path)
        platform = resolve_platform(platform_id)
    except (ConfigError, UnsupportedPlatformError) as e:
        result.error = str(e)
        return result
    result.platform = platform
    result.dotfiles_root = resolve_dotfiles_root(result.manifest_path)

    result.shell_choice = settings.shell_choice or (shell_chooser() if shell_chooser else "zsh")
    result.post_report = run_post_install_plan(
        manifest, result.dotfiles_root, home, result.shell_choice,
        registry or build_registry(mock_mode=mock_mode),
        platform=platform, settings=settings,
        dry_run=dry_run, mock_mode=mock_mode,
    )
    return result
