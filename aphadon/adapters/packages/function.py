"""
Function adapter — run a registered custom installer.

Manifest entries with ``method: function`` are planned onto this
adapter; it looks the installer up by package name and wraps its
result dict in a receipt.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

from aphadon.adapters.base import Adapter, ExecutionContext
from aphadon.core.models.action import Receipt
from aphadon.core.services.installers import (
    CUSTOM_INSTALLERS,
    InstallerContext,
    InstallerFn,
)

logger = logging.getLogger(__name__)


class FunctionAdapter(Adapter):
    """Dispatch to custom install functions.

    Action params:
        installer (str): Registry key of the installer to run.
    """

    def __init__(self, installers: Mapping[str, InstallerFn] | None = None):
        self._installers = dict(CUSTOM_INSTALLERS if installers is None else installers)

    @property
    def name(self) -> str:
        return "function"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        installer = context.action.params.get("installer", "")
        if not installer:
            return False, "Missing required param: 'installer'"
        if installer not in self._installers:
            return False, f"Custom installer '{installer}' not found"
        if context.platform is None:
            return False, "Custom installers need a platform"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        installer = context.action.params["installer"]
        assert context.platform is not None  # guaranteed by validate()

        logger.info("Using custom installation for: %s", installer)
        ctx = InstallerContext(
            platform=context.platform,
            home=Path(context.home).expanduser(),
        )
        try:
            result = self._installers[installer](ctx)
        except OSError as e:
            result = {"ok": False, "error": f"{installer} installer error: {e}"}

        if not result.get("ok"):
            logger.error("Failed to install: %s", installer)

        return Receipt.from_result(
            self.name,
            context.action.id,
            result,
            metadata={"installer": installer},
        )
