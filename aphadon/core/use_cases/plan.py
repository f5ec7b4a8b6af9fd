"""
Plan use case — what an install would do, without doing it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from aphadon.core.config.loader import ConfigError, load_manifest
from aphadon.core.engine.executor import ExecutionPlan
from aphadon.core.models.platform import Platform
from aphadon.core.services.planning import build_install_plan
from aphadon.core.services.platform import UnsupportedPlatformError
from aphadon.core.services.resolution import ResolvedPackage, resolve_package
from aphadon.core.services.selection import Selection
from aphadon.core.use_cases.install import resolve_platform


@dataclass
class PlanResult:
    platform: Platform | None = None
    selection: Selection | None = None
    packages: list[ResolvedPackage] = field(default_factory=list)
    filtered: dict[str, str] = field(default_factory=dict)
    plan: ExecutionPlan | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "platform": self.platform.model_dump(mode="json") if self.platform else None,
            "profile": self.selection.profile if self.selection else [],
            "exclude": self.selection.exclude if self.selection else [],
            "packages": [p.to_dict() for p in self.packages],
            "filtered": self.filtered,
            "actions": [
                {"id": a.id, "name": a.name, "adapter": a.adapter, "phase": a.phase}
                for a in (self.plan.actions if self.plan else [])
            ],
        }


def preview_install(
    selection: Selection,
    manifest_path: Path | None = None,
    platform_id: str | None = None,
) -> PlanResult:
    """Resolve the manifest for a platform and build the plan."""
    result = PlanResult(selection=selection)
    try:
        manifest, _path = load_manifest(manifest_path)
        platform = resolve_platform(platform_id)
    except (ConfigError, UnsupportedPlatformError) as e:
        result.error = str(e)
        return result

    result.platform = platform
    result.plan = build_install_plan(manifest, platform, selection)
    result.filtered = result.plan.filtered
    result.packages = [
        resolve_package(name, entry, platform)
        for name, entry in manifest.packages.items()
        if name not in result.filtered
    ]
    return result
