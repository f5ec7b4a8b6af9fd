"""
Notice adapter — planned skips.

Packages the installer deliberately does not install on this platform
(``skip``, ``aur``, ``snap``, ``flatpak``, ``manual``, a COPR on apt…)
are still planned, so that every manifest entry shows up in the report
with its reason. This adapter turns them into skip receipts.
"""

from __future__ import annotations

import logging

from aphadon.adapters.base import Adapter, ExecutionContext
from aphadon.core.models.action import Receipt

logger = logging.getLogger(__name__)


class NoticeAdapter(Adapter):
    """Emit a skip receipt with the planned reason.

    Action params:
        reason (str): Why the package is skipped.
    """

    has_side_effects = False

    @property
    def name(self) -> str:
        return "notice"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        if not context.action.params.get("reason"):
            return False, "Missing required param: 'reason'"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        reason = context.action.params["reason"]
        logger.warning(reason)
        return Receipt.skip(
            adapter=self.name,
            action_id=context.action.id,
            reason=reason,
        )
