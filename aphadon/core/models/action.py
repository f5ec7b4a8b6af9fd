"""
Action and Receipt models — the execution contract.

Actions represent requested install operations. Receipts represent results.
The engine sends Actions, adapters return Receipts. Never exceptions:
a failed package is a failed receipt, and the run moves on to the next one.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Action(BaseModel):
    """A requested operation to be executed by an adapter.

    Built by the planning service from the manifest, one or more per
    package, plus the bootstrap/finalize steps of each platform.
    """

    id: str                         # unique action identifier
    name: str = ""                  # human-readable label
    adapter: str                    # which adapter handles this
    phase: str = "package"          # bootstrap, package, finalize, post-install
    params: dict[str, Any] = Field(default_factory=dict)
    for_package: str | None = None  # manifest key (None = platform-wide)
    critical: bool = False          # abort the run when this fails


class Receipt(BaseModel):
    """Result of an adapter execution.

    Receipts capture the full outcome of an action. The adapter
    NEVER raises exceptions — failures are captured here.
    """

    adapter: str
    action_id: str
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the action succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the action failed."""
        return self.status == "failed"

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"

    @classmethod
    def success(
        cls,
        adapter: str,
        action_id: str,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="ok",
            output=output,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        adapter: str,
        action_id: str,
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="failed",
            error=error,
            **kwargs,
        )

    @classmethod
    def skip(
        cls,
        adapter: str,
        action_id: str,
        reason: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a skip receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="skipped",
            output=reason,
            **kwargs,
        )

    @classmethod
    def from_result(
        cls,
        adapter: str,
        action_id: str,
        result: dict[str, Any],
        **kwargs: Any,
    ) -> Receipt:
        """Convert a runner/installer result dict into a receipt.

        Result dicts follow the ``{"ok": bool, "error": str, ...}`` shape
        returned by ``run_command()`` and the custom installers.
        """
        metadata = {k: v for k, v in result.items() if k not in ("ok", "error", "stdout")}
        metadata.update(kwargs.pop("metadata", {}))
        if result.get("ok"):
            if result.get("skipped"):
                return cls.skip(
                    adapter=adapter,
                    action_id=action_id,
                    reason=result.get("message", ""),
                    metadata=metadata,
                    **kwargs,
                )
            return cls.success(
                adapter=adapter,
                action_id=action_id,
                output=result.get("stdout", "") or result.get("message", ""),
                metadata=metadata,
                **kwargs,
            )
        error = result.get("error") or "unknown error"
        stderr = result.get("stderr", "")
        if stderr:
            metadata["stderr"] = stderr
        return cls.failure(
            adapter=adapter,
            action_id=action_id,
            error=error,
            metadata=metadata,
            **kwargs,
        )
