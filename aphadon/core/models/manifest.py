"""
Manifest model — the declarative package list.

Loaded from packages.yaml, this is the canonical truth about what gets
installed, under which name, and how, on every supported platform.

A package record looks like::

    lazygit:
      default: lazygit
      tags: [dev]
      fedora:
        method: copr:atim/lazygit
      debian:
        method: function
      macos: lazygit

Every key that is not one of the entry's own fields is a platform key.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_STOW_PACKAGES = ["nvim", "tmux", "yazi", "ghostty"]

_ENTRY_FIELDS = {"default", "tags", "description", "platforms"}


class PlatformOverride(BaseModel):
    """Platform-specific name/method/skip for one package.

    Written either as a bare string (the package name on that platform)
    or as a mapping.
    """

    package: str | None = None
    method: str | None = None
    skip: bool = False

    @model_validator(mode="before")
    @classmethod
    def _coerce_shorthand(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"package": data}
        if isinstance(data, bool):
            # "macos: false" reads naturally as "not on macOS"
            return {"skip": not data}
        return data


class PackageEntry(BaseModel):
    """One manifest record, keyed by package name in the manifest."""

    default: str | None = None
    tags: list[str] = Field(default_factory=list)
    description: str = ""
    platforms: dict[str, PlatformOverride] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _collect_platform_keys(cls, data: Any) -> Any:
        if data is None:
            return {}
        if isinstance(data, str):
            return {"default": data}
        if not isinstance(data, dict):
            return data

        result: dict[str, Any] = {}
        platforms: dict[str, Any] = dict(data.get("platforms") or {})
        for key, value in data.items():
            if key in _ENTRY_FIELDS:
                if key != "platforms":
                    result[key] = value
                continue
            if value is None:
                continue
            platforms[str(key)] = value
        result["platforms"] = platforms
        return result

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [t.strip() for t in value.split(",") if t.strip()]
        return value

    def override_for(self, keys: list[str]) -> tuple[str, PlatformOverride] | None:
        """First override matching a platform lookup chain."""
        for key in keys:
            if key in self.platforms:
                return key, self.platforms[key]
        return None


class Manifest(BaseModel):
    """Root manifest — loaded from packages.yaml.

    Package order is the order of the YAML file and is the
    installation order.
    """

    packages: dict[str, PackageEntry] = Field(default_factory=dict)
    stow: list[str] = Field(default_factory=lambda: list(DEFAULT_STOW_PACKAGES))

    @field_validator("packages", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    def all_tags(self) -> list[str]:
        """Every tag used by at least one package, sorted."""
        tags: set[str] = set()
        for entry in self.packages.values():
            tags.update(entry.tags)
        return sorted(tags)

    def tag_counts(self) -> dict[str, int]:
        """Number of packages carrying each tag."""
        counts: dict[str, int] = {tag: 0 for tag in self.all_tags()}
        for entry in self.packages.values():
            for tag in entry.tags:
                counts[tag] += 1
        return counts
