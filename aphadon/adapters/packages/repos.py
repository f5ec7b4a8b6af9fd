"""
Repository adapter — third-party package sources.

Enables COPR projects, Ubuntu PPAs, EPEL and RPM Fusion before the
packages that need them. Enablement is idempotent: sources that are
already configured come back as skip receipts.
"""

from __future__ import annotations

import logging
import shutil

from aphadon.adapters.base import Adapter, ExecutionContext
from aphadon.adapters.shell.runner import command_output, run_command
from aphadon.core.models.action import Receipt

logger = logging.getLogger(__name__)

REPO_KINDS = ("copr", "ppa", "epel", "rpmfusion")

RPMFUSION_URLS = (
    "https://mirrors.rpmfusion.org/free/fedora/rpmfusion-free-release-{version}.noarch.rpm",
    "https://mirrors.rpmfusion.org/nonfree/fedora/rpmfusion-nonfree-release-{version}.noarch.rpm",
)


class RepositoryAdapter(Adapter):
    """Enable a package repository.

    Action params:
        kind (str): One of 'copr', 'ppa', 'epel', 'rpmfusion'.
        repo (str): COPR ``owner/project`` or PPA ``owner/name``.
        fedora_version (str): Release used for RPM Fusion URLs
            (default: ``rpm -E %fedora``).
    """

    @property
    def name(self) -> str:
        return "repo"

    def is_available(self) -> bool:
        return shutil.which("dnf") is not None or shutil.which("add-apt-repository") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        kind = context.action.params.get("kind", "")
        if kind not in REPO_KINDS:
            return False, f"Unknown repository kind '{kind}'. Valid: {', '.join(REPO_KINDS)}"
        if kind in ("copr", "ppa") and not context.action.params.get("repo"):
            return False, f"Missing required param: 'repo' for {kind}"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.action.params
        kind = params["kind"]
        action_id = context.action.id

        if kind == "copr":
            return self._enable_copr(action_id, params["repo"])
        if kind == "ppa":
            return self._add_ppa(action_id, params["repo"])
        if kind == "epel":
            return self._enable_epel(action_id)
        return self._enable_rpmfusion(action_id, params.get("fedora_version", ""))

    def _already(self, action_id: str, message: str) -> Receipt:
        logger.warning(message)
        return Receipt.skip(adapter=self.name, action_id=action_id, reason=message)

    def _enable_copr(self, action_id: str, repo: str) -> Receipt:
        logger.info("Enabling COPR: %s", repo)
        if repo in command_output(["dnf", "copr", "list"]):
            return self._already(action_id, f"COPR {repo} already enabled")
        result = run_command(["dnf", "-y", "copr", "enable", repo], needs_sudo=True)
        return Receipt.from_result(self.name, action_id, result, metadata={"repo": repo})

    def _add_ppa(self, action_id: str, repo: str) -> Receipt:
        logger.info("Adding PPA: %s", repo)
        result = run_command(["add-apt-repository", "-y", f"ppa:{repo}"], needs_sudo=True)
        if result["ok"]:
            result = run_command(["apt-get", "update"], needs_sudo=True)
        return Receipt.from_result(self.name, action_id, result, metadata={"repo": repo})

    def _enable_epel(self, action_id: str) -> Receipt:
        if "epel" in command_output(["dnf", "repolist"]):
            logger.info("EPEL already enabled")
            return Receipt.skip(adapter=self.name, action_id=action_id, reason="EPEL already enabled")
        logger.info("Enabling EPEL repository...")
        result = run_command(["dnf", "install", "-y", "epel-release"], needs_sudo=True)
        return Receipt.from_result(self.name, action_id, result)

    def _enable_rpmfusion(self, action_id: str, version: str) -> Receipt:
        if "rpmfusion" in command_output(["dnf", "repolist"]):
            return Receipt.skip(
                adapter=self.name,
                action_id=action_id,
                reason="RPM Fusion already enabled",
            )
        version = version or command_output(["rpm", "-E", "%fedora"]).strip()
        if not version:
            return Receipt.failure(
                adapter=self.name,
                action_id=action_id,
                error="Cannot determine Fedora release for RPM Fusion",
            )
        logger.info("Enabling RPM Fusion repositories...")
        urls = [u.format(version=version) for u in RPMFUSION_URLS]
        result = run_command(["dnf", "-y", "install", *urls], needs_sudo=True)
        return Receipt.from_result(self.name, action_id, result, metadata={"urls": urls})
