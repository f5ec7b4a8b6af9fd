"""
Install planning — manifest + platform + selection → ExecutionPlan.

The plan is the whole run, in order:

    bootstrap   system update, base repositories (per family)
    package     one or more actions per selected manifest entry
    finalize    upgrade / cleanup (per family)

Nothing is executed here; the engine runs the plan.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from aphadon.core.engine.executor import ExecutionPlan, generate_operation_id
from aphadon.core.models.action import Action
from aphadon.core.models.manifest import Manifest
from aphadon.core.models.platform import Platform
from aphadon.core.services.installers import CUSTOM_INSTALLERS
from aphadon.core.services.resolution import ResolvedPackage, resolve_package
from aphadon.core.services.selection import Selection, select_packages

logger = logging.getLogger(__name__)

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}
DEBIAN_BASE_PACKAGES = ["software-properties-common", "apt-transport-https", "ca-certificates"]


def _slug(text: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]+", "-", text).strip("-")


def _shell(
    action_id: str,
    name: str,
    command: list[str],
    *,
    phase: str,
    needs_sudo: bool = False,
    critical: bool = False,
    env: dict[str, str] | None = None,
) -> Action:
    params: dict[str, Any] = {"command": command, "needs_sudo": needs_sudo}
    if env:
        params["env"] = env
    return Action(
        id=action_id,
        name=name,
        adapter="shell",
        phase=phase,
        params=params,
        critical=critical,
    )


def bootstrap_actions(platform: Platform, operation_id: str) -> list[Action]:
    """System preparation before any package is installed."""
    prefix = f"{operation_id}:bootstrap"
    family = platform.family

    if family == "fedora":
        return [
            _shell(f"{prefix}:update", "Updating system packages", ["dnf", "-y", "update"],
                   phase="bootstrap", needs_sudo=True, critical=True),
            Action(
                id=f"{prefix}:rpmfusion",
                name="Enable RPM Fusion",
                adapter="repo",
                phase="bootstrap",
                # Nobara versions don't match Fedora's; let rpm answer there
                params={
                    "kind": "rpmfusion",
                    "fedora_version": platform.version if platform.id == "fedora" else "",
                },
            ),
        ]
    if family == "rocky":
        return [
            _shell(f"{prefix}:update", "Updating system packages", ["dnf", "-y", "update"],
                   phase="bootstrap", needs_sudo=True, critical=True),
            Action(
                id=f"{prefix}:epel",
                name="Enable EPEL",
                adapter="repo",
                phase="bootstrap",
                params={"kind": "epel"},
            ),
        ]
    if family == "debian":
        return [
            _shell(f"{prefix}:update", "Updating package lists", ["apt-get", "update"],
                   phase="bootstrap", needs_sudo=True, critical=True),
            Action(
                id=f"{prefix}:base",
                name="Installing prerequisites",
                adapter="apt",
                phase="bootstrap",
                params={"packages": list(DEBIAN_BASE_PACKAGES)},
            ),
        ]
    if family == "arch":
        return [
            _shell(f"{prefix}:update", "Updating system packages",
                   ["pacman", "-Syu", "--noconfirm"],
                   phase="bootstrap", needs_sudo=True, critical=True),
        ]
    if family == "macos":
        return [
            _shell(f"{prefix}:update", "Updating Homebrew", ["brew", "update"], phase="bootstrap"),
        ]
    return []


def finalize_actions(platform: Platform, operation_id: str) -> list[Action]:
    """Steps after all packages."""
    prefix = f"{operation_id}:finalize"
    if platform.family == "debian":
        return [
            _shell(f"{prefix}:upgrade", "Upgrading packages", ["apt-get", "upgrade", "-y"],
                   phase="finalize", needs_sudo=True, env=APT_ENV),
        ]
    if platform.is_macos:
        return [
            _shell(f"{prefix}:cleanup", "Cleaning up Homebrew", ["brew", "cleanup"],
                   phase="finalize"),
        ]
    return []


def find_installer_key(name: str, installers: Mapping[str, Any]) -> str | None:
    """Registry key of the custom installer for a manifest name."""
    for key in (name, name.replace("_", "-"), name.replace("-", "_")):
        if key in installers:
            return key
    return None


@dataclass
class _PackagePlanner:
    platform: Platform
    operation_id: str
    installers: Mapping[str, Any]

    def __post_init__(self) -> None:
        self.enabled_repos: set[str] = set()

    def _id(self, name: str, step: str) -> str:
        return f"{self.operation_id}:pkg:{_slug(name)}:{step}"

    def notice(self, name: str, reason: str) -> Action:
        return Action(
            id=self._id(name, "notice"),
            name=f"{name} (skipped)",
            adapter="notice",
            params={"reason": reason},
            for_package=name,
        )

    def install(self, name: str, package: str) -> Action:
        return Action(
            id=self._id(name, "install"),
            name=f"install {package}",
            adapter=self.platform.package_manager,
            params={"packages": [package]},
            for_package=name,
        )

    def repo(self, name: str, kind: str, repo: str) -> Action | None:
        key = f"{kind}:{repo}"
        if key in self.enabled_repos:
            return None
        self.enabled_repos.add(key)
        return Action(
            id=self._id(name, kind),
            name=f"enable {key}",
            adapter="repo",
            params={"kind": kind, "repo": repo},
            for_package=name,
        )

    def actions_for(self, resolved: ResolvedPackage) -> list[Action]:
        name = resolved.name
        if resolved.skipped:
            return [self.notice(name, f"Skipping {name} ({resolved.skip_reason})")]

        package = resolved.package or name
        pm = self.platform.package_manager
        kind = resolved.kind

        if kind == "function":
            key = find_installer_key(name, self.installers)
            if key is not None:
                return [Action(
                    id=self._id(name, "function"),
                    name=f"custom install {name}",
                    adapter="function",
                    params={"installer": key},
                    for_package=name,
                )]
            logger.error("Custom installer for %s not found!", name)
            logger.warning("Falling back to standard installation...")
            return [self.install(name, package)]

        if kind in ("copr", "ppa"):
            supported = (kind == "copr" and pm == "dnf") or (kind == "ppa" and pm == "apt")
            if not supported:
                return [self.notice(
                    name,
                    f"Skipping {name} ({kind.upper()} not available on {self.platform.id})",
                )]
            actions: list[Action] = []
            enable = self.repo(name, kind, resolved.method_arg)
            if enable is not None:
                actions.append(enable)
            actions.append(self.install(name, package))
            return actions

        if kind == "skip":
            return [self.notice(name, f"Skipping {name} (marked as: {resolved.method})")]
        if kind == "unsupported":
            return [self.notice(name, f"Snap installation not supported - skipping {name}")]
        if kind == "manual":
            return [self.notice(
                name,
                f"Manual installation may be required for: {name} ({resolved.method})",
            )]

        return [self.install(name, package)]


def resolve_selected(
    manifest: Manifest,
    platform: Platform,
    selection: Selection,
) -> tuple[list[ResolvedPackage], dict[str, str]]:
    """Resolve every selected entry, in manifest order.

    Returns:
        (resolved packages, {filtered name: reason}).
    """
    selected, filtered = select_packages(manifest.packages, selection)
    resolved = [resolve_package(name, manifest.packages[name], platform) for name in selected]
    return resolved, filtered


def build_install_plan(
    manifest: Manifest,
    platform: Platform,
    selection: Selection,
    installers: Mapping[str, Any] | None = None,
    operation_id: str | None = None,
    include_system: bool = True,
) -> ExecutionPlan:
    """Build the full install plan.

    Args:
        manifest: Loaded package manifest.
        platform: Target platform.
        selection: Active profile and exclusions.
        installers: Custom installer registry (default: built-in).
        operation_id: Reuse an id (default: generated).
        include_system: Include bootstrap and finalize steps.
    """
    operation_id = operation_id or generate_operation_id()
    plan = ExecutionPlan(operation_id=operation_id, automation="install")
    planner = _PackagePlanner(
        platform=platform,
        operation_id=operation_id,
        installers=CUSTOM_INSTALLERS if installers is None else installers,
    )

    if include_system:
        for action in bootstrap_actions(platform, operation_id):
            plan.add(action)

    resolved, plan.filtered = resolve_selected(manifest, platform, selection)
    for item in resolved:
        for action in planner.actions_for(item):
            plan.add(action)

    if include_system:
        for action in finalize_actions(platform, operation_id):
            plan.add(action)

    logger.debug(
        "Planned %d actions for %d packages (%d filtered)",
        plan.total_actions, len(resolved), len(plan.filtered),
    )
    return plan
