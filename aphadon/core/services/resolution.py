"""
Per-platform resolution — manifest entry → package name and method.
"""

from __future__ import annotations

from dataclasses import dataclass

from aphadon.core.models.manifest import PackageEntry
from aphadon.core.models.platform import Platform

_SKIP_METHODS = {"aur", "skip", "copr"}
_MANUAL_METHODS = {"flatpak", "manual"}


@dataclass
class ResolvedPackage:
    """What to install for one manifest entry on one platform."""

    name: str
    package: str | None = None
    method: str | None = None
    skip_reason: str = ""
    source: str = "default"  # the override key used, or "default"

    @property
    def skipped(self) -> bool:
        return bool(self.skip_reason)

    @property
    def kind(self) -> str:
        return method_kind(self.method)

    @property
    def method_arg(self) -> str:
        """Argument after ``copr:`` / ``ppa:``."""
        if self.method and ":" in self.method:
            return self.method.split(":", 1)[1]
        return ""

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "package": self.package,
            "method": self.method,
            "kind": self.kind,
            "source": self.source,
            "skip_reason": self.skip_reason,
        }


def method_kind(method: str | None) -> str:
    """Classify a method string.

    Returns one of ``standard``, ``function``, ``copr``, ``ppa``,
    ``skip``, ``unsupported`` or ``manual``.
    """
    if not method:
        return "standard"
    if method == "function":
        return "function"
    if method.startswith("copr:"):
        return "copr"
    if method.startswith("ppa:"):
        return "ppa"
    if method in _SKIP_METHODS:
        return "skip"
    if method == "snap":
        return "unsupported"
    if method in _MANUAL_METHODS:
        return "manual"
    return "standard"


def resolve_package(name: str, entry: PackageEntry, platform: Platform) -> ResolvedPackage:
    """Resolve an entry against the platform's override chain."""
    match = entry.override_for(platform.lookup_keys)
    if match is not None:
        key, override = match
        if override.skip:
            return ResolvedPackage(name=name, skip_reason=f"marked as skip for {key}", source=key)
        package = override.package or entry.default
        resolved = ResolvedPackage(name=name, package=package, method=override.method, source=key)
    else:
        resolved = ResolvedPackage(name=name, package=entry.default)

    if resolved.package == "skip":
        resolved.package = None
        resolved.skip_reason = "marked as skip"
    elif not resolved.package and resolved.kind != "function":
        # custom installers are keyed by the manifest name
        resolved.skip_reason = (
            "not available on macOS" if platform.is_macos else "no package defined"
        )
    return resolved
