"""
Manifest check use case — validate packages.yaml and report issues.

Schema problems are errors (nothing can be planned). Entries that
would silently do nothing, or do something surprising, are warnings.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from aphadon.core.config.loader import ConfigError, load_manifest
from aphadon.core.models.manifest import Manifest
from aphadon.core.services.installers import CUSTOM_INSTALLERS
from aphadon.core.services.planning import find_installer_key
from aphadon.core.services.platform import FAMILIES, supported_ids
from aphadon.core.services.resolution import method_kind

_KNOWN_METHODS = {
    "function", "aur", "skip", "copr", "snap", "flatpak", "manual",
    "dnf", "apt", "pacman", "brew",
}


@dataclass
class ManifestCheckResult:
    """Result of manifest validation."""

    valid: bool = False
    manifest: Manifest | None = None
    manifest_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "manifest_path": str(self.manifest_path) if self.manifest_path else "bundled",
            "errors": self.errors,
            "warnings": self.warnings,
            "package_count": len(self.manifest.packages) if self.manifest else 0,
            "tags": self.manifest.tag_counts() if self.manifest else {},
        }


def validate_manifest(
    manifest: Manifest,
    installers: Mapping[str, Any] | None = None,
) -> tuple[list[str], list[str]]:
    """Semantic checks on a schema-valid manifest.

    Returns:
        (errors, warnings).
    """
    installers = CUSTOM_INSTALLERS if installers is None else installers
    known_keys = set(supported_ids()) | set(FAMILIES)
    errors: list[str] = []
    warnings: list[str] = []

    if not manifest.packages:
        warnings.append("Manifest defines no packages")

    for name, entry in manifest.packages.items():
        if entry.default is None and not entry.platforms:
            warnings.append(f"{name}: no default and no platform entries (always skipped)")

        for key, override in entry.platforms.items():
            where = f"{name}.{key}"
            if key not in known_keys:
                warnings.append(f"{where}: unknown platform key")

            method = override.method
            if not method:
                continue
            kind = method_kind(method)
            if kind in ("copr", "ppa") and not method.split(":", 1)[1].strip():
                errors.append(f"{where}: '{method}' names no repository")
            elif kind == "function" and find_installer_key(name, installers) is None:
                warnings.append(
                    f"{where}: no custom installer for '{name}' (falls back to package manager)"
                )
            elif kind == "standard" and method not in _KNOWN_METHODS:
                warnings.append(f"{where}: unknown method '{method}' (installed normally)")

    return errors, warnings


def check_manifest(manifest_path: Path | None = None) -> ManifestCheckResult:
    """Load and validate the manifest.

    Args:
        manifest_path: Optional explicit path to packages.yaml.
    """
    result = ManifestCheckResult()
    try:
        manifest, result.manifest_path = load_manifest(manifest_path)
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    result.manifest = manifest
    errors, warnings = validate_manifest(manifest)
    result.errors.extend(errors)
    result.warnings.extend(warnings)
    result.valid = not result.errors
    return result
