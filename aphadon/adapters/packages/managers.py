"""
Package manager adapters — dnf, apt, pacman, brew.

One adapter instance per package manager, registered under the
manager's name. The planning service emits one action per manifest
package; the adapter turns it into the manager's install command.
"""

from __future__ import annotations

import logging
import shutil

from aphadon.adapters.base import Adapter, ExecutionContext
from aphadon.adapters.shell.runner import DEFAULT_TIMEOUT, run_command
from aphadon.core.models.action import Receipt

logger = logging.getLogger(__name__)

# pm → (binary, install argv prefix, needs sudo)
_PM_COMMANDS: dict[str, tuple[str, list[str], bool]] = {
    "dnf": ("dnf", ["dnf", "-y", "install"], True),
    "apt": ("apt-get", ["apt-get", "install", "-y"], True),
    "pacman": ("pacman", ["pacman", "-S", "--needed", "--noconfirm"], True),
    "brew": ("brew", ["brew", "install"], False),
}

SUPPORTED_MANAGERS = tuple(_PM_COMMANDS)

_PM_ENV: dict[str, dict[str, str]] = {
    "apt": {"DEBIAN_FRONTEND": "noninteractive"},
}


def build_install_cmd(packages: list[str], pm: str) -> list[str]:
    """Build a package-install command for a list of packages.

    Args:
        packages: Package names to install.
        pm: Package manager ID.

    Returns:
        Command list suitable for subprocess.run().

    Raises:
        ValueError: Unknown package manager.
    """
    if pm not in _PM_COMMANDS:
        raise ValueError(f"No install command for package manager: {pm}")
    return list(_PM_COMMANDS[pm][1]) + list(packages)


def needs_sudo(pm: str) -> bool:
    return _PM_COMMANDS[pm][2]


class PackageManagerAdapter(Adapter):
    """Install packages through one system package manager.

    Action params:
        packages (list[str]): Package names to install.
        timeout (int): Timeout in seconds.
    """

    def __init__(self, pm: str):
        if pm not in _PM_COMMANDS:
            raise ValueError(f"Unsupported package manager: {pm}")
        self._pm = pm

    @property
    def name(self) -> str:
        return self._pm

    def is_available(self) -> bool:
        return shutil.which(_PM_COMMANDS[self._pm][0]) is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        packages = context.action.params.get("packages")
        if not packages:
            return False, "Missing required param: 'packages'"
        if not isinstance(packages, list):
            return False, "'packages' must be a list"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        packages = context.action.params["packages"]
        label = " ".join(packages)
        logger.info("Installing: %s", label)

        result = run_command(
            build_install_cmd(packages, self._pm),
            needs_sudo=needs_sudo(self._pm),
            timeout=context.action.params.get("timeout", DEFAULT_TIMEOUT),
            env_overrides=_PM_ENV.get(self._pm),
        )
        if not result["ok"]:
            logger.error("Failed to install: %s", label)

        return Receipt.from_result(
            self.name,
            context.action.id,
            result,
            metadata={"packages": packages, "package_manager": self._pm},
        )
