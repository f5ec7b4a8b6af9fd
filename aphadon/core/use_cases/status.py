"""
Status use case — last run state and audit history.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from aphadon.core.config.loader import ConfigError, find_manifest_file, resolve_dotfiles_root
from aphadon.core.models.state import InstallState
from aphadon.core.persistence.audit import AuditEntry, AuditWriter
from aphadon.core.persistence.state_file import default_state_path, load_state


@dataclass
class StatusResult:
    """Persisted install state for a dotfiles checkout."""

    state: InstallState | None = None
    dotfiles_root: Path | None = None
    state_path: Path | None = None
    error: str | None = None

    @property
    def has_state(self) -> bool:
        return self.state_path is not None and self.state_path.is_file()

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        if self.error:
            return {"error": self.error}
        result: dict = {
            "dotfiles_root": str(self.dotfiles_root),
            "state_file": str(self.state_path),
            "has_state": self.has_state,
        }
        if self.state:
            result["state"] = self.state.model_dump(mode="json")
        return result


@dataclass
class HistoryResult:
    entries: list[AuditEntry] = field(default_factory=list)
    ledger_path: Path | None = None

    def to_dict(self) -> dict:
        return {
            "ledger": str(self.ledger_path),
            "entries": [e.model_dump(mode="json") for e in self.entries],
        }


def _root(manifest_path: Path | None) -> Path:
    if manifest_path is None:
        manifest_path = find_manifest_file()
    elif not manifest_path.is_file():
        raise ConfigError(f"Manifest not found: {manifest_path}")
    return resolve_dotfiles_root(manifest_path)


def get_status(manifest_path: Path | None = None) -> StatusResult:
    """Load the persisted state of the current dotfiles checkout."""
    result = StatusResult()
    try:
        root = _root(manifest_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    result.dotfiles_root = root
    result.state_path = default_state_path(root)
    result.state = load_state(result.state_path)
    return result


def get_history(manifest_path: Path | None = None, n: int = 10) -> HistoryResult:
    """Most recent audit entries, oldest first.

    Raises:
        ConfigError: Explicit manifest path does not exist.
    """
    writer = AuditWriter(dotfiles_root=_root(manifest_path))
    return HistoryResult(entries=writer.read_recent(n), ledger_path=writer.path)
