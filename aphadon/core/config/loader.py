"""
Configuration loader — reads packages.yaml into the Manifest model.

It reads YAML, validates against the Pydantic schema, and returns a
typed Manifest. The manifest is searched upward from the working
directory so the installer can run from anywhere inside the dotfiles
checkout; a default manifest ships with the package.
"""

from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path

import yaml
from pydantic import ValidationError

from aphadon.core.models.manifest import Manifest

logger = logging.getLogger(__name__)

MANIFEST_FILE = "packages.yaml"
MANIFEST_CANDIDATES = (MANIFEST_FILE, f"install/{MANIFEST_FILE}")


class ConfigError(Exception):
    """Raised when the manifest or profile configuration is invalid."""


def find_manifest_file(start_dir: Path | None = None) -> Path | None:
    """Search for packages.yaml (or install/packages.yaml), walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to the manifest, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        for name in MANIFEST_CANDIDATES:
            candidate = current / name
            if candidate.is_file():
                return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def dotfiles_root_for(manifest_path: Path) -> Path:
    """The dotfiles checkout a manifest belongs to.

    ``<root>/install/packages.yaml`` and ``<root>/packages.yaml`` both
    map to ``<root>``.
    """
    parent = manifest_path.resolve().parent
    if parent.name == "install":
        return parent.parent
    return parent


def parse_manifest(raw: str, source: str = "<string>") -> Manifest:
    """Parse manifest YAML text.

    Raises:
        ConfigError: Invalid YAML or schema.
    """
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {source}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {source}, got {type(data).__name__}")
    if "packages" in data and not isinstance(data["packages"], (dict, type(None))):
        raise ConfigError(f"'packages' must be a mapping in {source}")

    try:
        return Manifest.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid manifest {source}: {e}") from e


def default_manifest_text() -> str:
    """The manifest bundled with the package."""
    return resources.files("aphadon").joinpath("data", MANIFEST_FILE).read_text(encoding="utf-8")


def load_manifest(path: Path | None = None) -> tuple[Manifest, Path | None]:
    """Load and validate the package manifest.

    Args:
        path: Explicit manifest path. If None, searches upward and falls
            back to the bundled default.

    Returns:
        (manifest, path it was read from — None for the bundled default).

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if path is None:
        path = find_manifest_file()

    if path is None:
        logger.debug("No %s found, using the bundled manifest", MANIFEST_FILE)
        return parse_manifest(default_manifest_text(), "bundled packages.yaml"), None

    if not path.is_file():
        raise ConfigError(f"Manifest not found: {path}")

    logger.debug("Loading manifest from %s", path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    manifest = parse_manifest(raw, str(path))
    logger.debug("Loaded %d packages from %s", len(manifest.packages), path)
    return manifest, path


def resolve_dotfiles_root(manifest_path: Path | None) -> Path:
    """Dotfiles root for a loaded manifest (cwd for the bundled one)."""
    if manifest_path is None:
        return Path.cwd().resolve()
    return dotfiles_root_for(manifest_path)
