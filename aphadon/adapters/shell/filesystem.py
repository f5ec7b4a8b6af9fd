"""
Filesystem adapter — directory preparation with receipts.

Gives post-install's directory creation the same audited, dry-runnable
path as every other step.
"""

from __future__ import annotations

import logging
from pathlib import Path

from aphadon.adapters.base import Adapter, ExecutionContext
from aphadon.core.models.action import Receipt

logger = logging.getLogger(__name__)

_VALID_OPS = {"mkdir"}


class FilesystemAdapter(Adapter):
    """Directory operations with receipts.

    Action params:
        operation (str): Only 'mkdir' for now.
        path (str): Target path; ``~`` expands to the context's home.
    """

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.action.params.get("operation", "")
        if not operation:
            return False, "Missing required param: 'operation'"
        if operation not in _VALID_OPS:
            return False, f"Unknown operation '{operation}'. Valid: {', '.join(sorted(_VALID_OPS))}"
        if not context.action.params.get("path"):
            return False, "Missing required param: 'path'"
        return True, ""

    def _resolve(self, context: ExecutionContext, raw_path: str) -> Path:
        if raw_path == "~" or raw_path.startswith("~/"):
            return Path(context.home).expanduser() / raw_path[2:]
        target = Path(raw_path)
        if not target.is_absolute():
            target = Path(context.working_dir) / target
        return target

    def execute(self, context: ExecutionContext) -> Receipt:
        target = self._resolve(context, context.action.params["path"])
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Filesystem error: {e}",
                metadata={"path": str(target)},
            )
        logger.debug("Directory ready: %s", target)
        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            output=f"Directory ready: {target}",
            metadata={"path": str(target)},
        )
