"""
Install settings — profile, excluded tags and shell choice.

Values come from, in precedence order:
    CLI option  >  environment variable  >  ~/.install-profile  >  default

``~/.install-profile`` is a shell-style ``KEY=VALUE`` file so it can
also be sourced by a shell::

    # ~/.install-profile
    export INSTALL_PROFILE="core,dev"
    EXCLUDE_TAGS=gui
    SHELL_CHOICE=zsh
"""

from __future__ import annotations

import logging
import os
import shlex
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from aphadon.core.config.loader import ConfigError
from aphadon.core.services.selection import FULL_PROFILE, Selection, parse_tags

logger = logging.getLogger(__name__)

PROFILE_FILE_NAME = ".install-profile"
SHELL_CHOICES = ("zsh", "bash", "skip")

ENV_PROFILE = "INSTALL_PROFILE"
ENV_EXCLUDE = "EXCLUDE_TAGS"
ENV_SHELL = "SHELL_CHOICE"


def default_profile_path(home: Path | None = None) -> Path:
    return (home or Path.home()) / PROFILE_FILE_NAME


class InstallSettings(BaseModel):
    """Effective settings of one run."""

    profile: str = FULL_PROFILE
    exclude: str = ""
    shell_choice: str | None = None
    sources: dict[str, str] = Field(default_factory=dict)  # setting → where it came from

    @field_validator("shell_choice")
    @classmethod
    def _check_shell(cls, value: str | None) -> str | None:
        if value is None or value == "":
            return None
        value = value.strip().lower()
        if value not in SHELL_CHOICES:
            raise ValueError(f"shell choice must be one of {', '.join(SHELL_CHOICES)}")
        return value

    @property
    def selection(self) -> Selection:
        return Selection.from_strings(self.profile, self.exclude)

    @property
    def exclude_tags(self) -> list[str]:
        return parse_tags(self.exclude)


def read_profile_file(path: Path) -> dict[str, str]:
    """Parse a ``KEY=VALUE`` profile file.

    ``export`` prefixes, quotes and ``#`` comments are accepted.
    A missing file yields an empty mapping.

    Raises:
        ConfigError: The file exists but cannot be read or parsed.
    """
    if not path.is_file():
        return {}

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    values: dict[str, str] = {}
    for line_num, line in enumerate(text.splitlines(), start=1):
        try:
            tokens = shlex.split(line, comments=True)
        except ValueError as e:
            raise ConfigError(f"{path}:{line_num}: {e}") from e
        if tokens and tokens[0] == "export":
            tokens = tokens[1:]
        if not tokens:
            continue
        if "=" not in tokens[0]:
            logger.warning("%s:%d: ignoring line without KEY=VALUE", path, line_num)
            continue
        key, _, value = tokens[0].partition("=")
        values[key.strip()] = value
    logger.debug("Read %d settings from %s", len(values), path)
    return values


def resolve_settings(
    profile: str | None = None,
    exclude: str | None = None,
    shell_choice: str | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    profile_path: Path | None = None,
) -> InstallSettings:
    """Merge CLI values, environment and the profile file.

    Raises:
        ConfigError: Unreadable profile file or invalid shell choice.
    """
    env = os.environ if environ is None else environ
    file_values = read_profile_file(profile_path or default_profile_path())

    resolved: dict[str, str | None] = {}
    sources: dict[str, str] = {}
    for field_name, cli_value, env_key in (
        ("profile", profile, ENV_PROFILE),
        ("exclude", exclude, ENV_EXCLUDE),
        ("shell_choice", shell_choice, ENV_SHELL),
    ):
        if cli_value is not None:
            resolved[field_name], sources[field_name] = cli_value, "cli"
        elif env.get(env_key):
            resolved[field_name], sources[field_name] = env[env_key], "env"
        elif file_values.get(env_key):
            resolved[field_name], sources[field_name] = file_values[env_key], "file"

    if not (resolved.get("profile") or "").strip():
        resolved["profile"] = FULL_PROFILE
        sources["profile"] = sources.get("profile", "default")

    try:
        return InstallSettings(
            profile=resolved["profile"],
            exclude=resolved.get("exclude") or "",
            shell_choice=resolved.get("shell_choice"),
            sources=sources,
        )
    except ValueError as e:
        raise ConfigError(f"Invalid install settings: {e}") from e


def save_profile_file(settings: InstallSettings, path: Path | None = None) -> Path:
    """Write the effective settings back to the profile file."""
    path = path or default_profile_path()
    lines = [
        "# Written by aphadon install --save-profile",
        f"export {ENV_PROFILE}={shlex.quote(settings.profile)}",
        f"export {ENV_EXCLUDE}={shlex.quote(settings.exclude)}",
    ]
    if settings.shell_choice:
        lines.append(f"export {ENV_SHELL}={shlex.quote(settings.shell_choice)}")
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    logger.info("Saved install profile to %s", path)
    return path
