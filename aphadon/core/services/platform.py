"""
Platform detection — which distribution, family and package manager.

Linux systems are identified from ``/etc/os-release``; macOS from
``platform.system()``. The result decides which manifest overrides
apply and which bootstrap steps run.
"""

from __future__ import annotations

import logging
import platform as _platform
import shlex
from pathlib import Path

from aphadon.core.models.platform import Platform

logger = logging.getLogger(__name__)

OS_RELEASE = Path("/etc/os-release")

# family → (distribution ids, package manager)
FAMILIES: dict[str, tuple[tuple[str, ...], str]] = {
    "fedora": (("fedora", "nobara"), "dnf"),
    "rocky": (("rocky", "rhel", "almalinux", "centos"), "dnf"),
    "debian": (("ubuntu", "debian", "pop", "linuxmint"), "apt"),
    "arch": (("arch", "endeavouros", "manjaro"), "pacman"),
    "macos": (("macos",), "brew"),
}

SUPPORTED_LABEL = "Fedora, Nobara, Rocky Linux, Ubuntu, Debian, Arch Linux, macOS"

_ARCH_ALIASES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "armv7",
    "armv7": "armv7",
}


class UnsupportedPlatformError(Exception):
    """The current OS cannot be detected or is not supported."""


def normalize_arch(machine: str | None = None) -> str:
    """Map ``uname -m`` output to ``x86_64``, ``arm64``, ``armv7`` or ``unknown``."""
    if machine is None:
        machine = _platform.machine()
    return _ARCH_ALIASES.get(machine.lower(), "unknown")


def family_for(distro_id: str) -> str | None:
    """Family a distribution id belongs to, or None."""
    for family, (ids, _pm) in FAMILIES.items():
        if distro_id in ids:
            return family
    return None


def supported_ids() -> list[str]:
    return [i for ids, _pm in FAMILIES.values() for i in ids]


def parse_os_release(text: str) -> dict[str, str]:
    """Parse ``KEY=value`` lines of an os-release file."""
    values: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, raw = line.partition("=")
        try:
            parts = shlex.split(raw)
        except ValueError:
            parts = [raw.strip("\"'")]
        values[key.strip()] = parts[0] if parts else ""
    return values


def parse_platform(
    distro_id: str,
    *,
    version: str = "",
    arch: str | None = None,
    id_like: str = "",
    pretty_name: str = "",
) -> Platform:
    """Build a Platform for a distribution id.

    Unknown ids are matched through ``id_like`` (``ID_LIKE`` in
    os-release), so derivatives of supported distributions work.

    Raises:
        UnsupportedPlatformError: Neither the id nor its relatives are known.
    """
    distro_id = distro_id.strip().lower()
    family = family_for(distro_id)
    if family is None and distro_id in FAMILIES:
        family = distro_id
    if family is None:
        for like in id_like.lower().split():
            family = family_for(like)
            if family is not None:
                logger.debug("Treating %s as %s (ID_LIKE=%s)", distro_id, family, id_like)
                break
    if family is None:
        raise UnsupportedPlatformError(
            f"Unsupported OS: {distro_id}. Supported: {SUPPORTED_LABEL}"
        )

    return Platform(
        id=distro_id,
        family=family,
        package_manager=FAMILIES[family][1],
        version=version,
        arch=normalize_arch(arch),
        system="Darwin" if family == "macos" else "Linux",
        pretty_name=pretty_name,
    )


def detect_platform(
    os_release_path: Path = OS_RELEASE,
    system: str | None = None,
    machine: str | None = None,
) -> Platform:
    """Detect the platform this process runs on.

    Raises:
        UnsupportedPlatformError: No os-release file or an unknown distribution.
    """
    system = system or _platform.system()
    if system == "Darwin":
        return parse_platform(
            "macos",
            version=_platform.mac_ver()[0],
            arch=machine,
            pretty_name="macOS",
        )

    if not os_release_path.is_file():
        raise UnsupportedPlatformError("Cannot detect OS (no /etc/os-release)")

    info = parse_os_release(os_release_path.read_text(encoding="utf-8", errors="replace"))
    distro_id = info.get("ID", "")
    if not distro_id:
        raise UnsupportedPlatformError(f"Cannot detect OS (no ID in {os_release_path})")

    return parse_platform(
        distro_id,
        version=info.get("VERSION_ID", ""),
        arch=machine,
        id_like=info.get("ID_LIKE", ""),
        pretty_name=info.get("PRETTY_NAME", ""),
    )
