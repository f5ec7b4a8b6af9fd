"""
Profile selection — which manifest packages a run installs.

A profile is a comma-separated list of tags (``core,dev``); ``full``
selects everything. Excluded tags always win.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from aphadon.core.models.manifest import PackageEntry

logger = logging.getLogger(__name__)

FULL_PROFILE = "full"

# Shown in --help; the manifest may define more.
COMMON_PROFILES = {
    "full": "Everything (default)",
    "core,dev": "Minimal development setup",
    "core,dev,desktop": "Development plus desktop tools",
    "core,server": "Headless server",
}


def parse_tags(value: str | list[str] | None) -> list[str]:
    """Split ``"core, dev"`` into ``["core", "dev"]``.

    Items are trimmed, empty items and duplicates dropped, order kept.
    """
    if not value:
        return []
    items = value.split(",") if isinstance(value, str) else value
    tags: list[str] = []
    for item in items:
        tag = item.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


@dataclass
class Selection:
    """Active profile and exclusions for one run."""

    profile: list[str] = field(default_factory=lambda: [FULL_PROFILE])
    exclude: list[str] = field(default_factory=list)

    @classmethod
    def from_strings(cls, profile: str | None, exclude: str | None) -> Selection:
        return cls(
            profile=parse_tags(profile) or [FULL_PROFILE],
            exclude=parse_tags(exclude),
        )

    @property
    def is_full(self) -> bool:
        return FULL_PROFILE in self.profile

    @property
    def profile_label(self) -> str:
        return ",".join(self.profile)


def should_install(
    entry: PackageEntry,
    profile_tags: list[str],
    exclude_tags: list[str],
) -> tuple[bool, str]:
    """Decide whether an entry is selected.

    Returns:
        (install, reason). ``reason`` is empty when installing.
    """
    if not entry.tags:
        return True, ""

    for tag in entry.tags:
        if tag in exclude_tags:
            return False, f"excluded (tag: {tag})"

    if FULL_PROFILE in profile_tags:
        return True, ""

    if any(tag in profile_tags for tag in entry.tags):
        return True, ""
    return False, "not in profile"


def select_packages(
    packages: dict[str, PackageEntry],
    selection: Selection,
) -> tuple[list[str], dict[str, str]]:
    """Apply the selection to manifest entries, in manifest order.

    Returns:
        (selected names, {filtered name: reason}).
    """
    selected: list[str] = []
    filtered: dict[str, str] = {}
    for name, entry in packages.items():
        ok, reason = should_install(entry, selection.profile, selection.exclude)
        if ok:
            selected.append(name)
            continue
        filtered[name] = reason
        if reason.startswith("excluded"):
            logger.warning("Skipping %s (excluded by tag)", name)
        else:
            logger.debug("Skipping %s (%s)", name, reason)
    return selected, filtered
