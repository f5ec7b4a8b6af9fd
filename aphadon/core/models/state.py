"""
InstallState — the root state model.

The single document that captures what the installer last did on this
machine. It's serialized to .state/current.json in the dotfiles root and
loaded on every run.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class PackageState(BaseModel):
    """Last known outcome for one manifest package."""

    name: str
    installed_as: str = ""
    method: str = ""
    last_action_at: str | None = None
    last_action_status: str | None = None  # ok, failed, skipped
    last_error: str | None = None


class OperationRecord(BaseModel):
    """Summary of one finished operation."""

    operation_id: str = ""
    automation: str = ""       # install, post-install
    started_at: str = ""
    ended_at: str = ""
    status: str = ""           # ok, partial, failed
    actions_total: int = 0
    actions_succeeded: int = 0
    actions_failed: int = 0
    actions_skipped: int = 0


class InstallState(BaseModel):
    """Root state model — serialized to .state/current.json.

    It's disposable and reproducible: delete it and the next run
    rebuilds it from the manifest and the receipts it produces.
    """

    # ── Schema ───────────────────────────────────────────────────
    schema_version: int = 1

    # ── Identity ─────────────────────────────────────────────────
    platform_id: str = ""
    profile: str = "full"
    exclude: list[str] = Field(default_factory=list)
    shell_choice: str = ""

    # ── Timestamps ───────────────────────────────────────────────
    created_at: str = Field(default_factory=_now_iso)
    updated_at: str = Field(default_factory=_now_iso)

    # ── Component state ──────────────────────────────────────────
    packages: dict[str, PackageState] = Field(default_factory=dict)

    # ── Last operations ──────────────────────────────────────────
    last_operation: OperationRecord = Field(default_factory=OperationRecord)
    last_post_install: OperationRecord = Field(default_factory=OperationRecord)

    # ── Extensible metadata ──────────────────────────────────────
    metadata: dict[str, Any] = Field(default_factory=dict)

    def touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = _now_iso()

    def set_package_state(self, name: str, **kwargs: Any) -> None:
        """Update or create a package state entry."""
        if name in self.packages:
            for key, value in kwargs.items():
                setattr(self.packages[name], key, value)
        else:
            self.packages[name] = PackageState(name=name, **kwargs)
