"""
Adapter registry — central dispatch for all adapter operations.

The registry is the single point of adapter management. It handles
registration, lookup, mock mode, dry-run, and action execution. The
engine never talks to adapters directly — always through the registry.
"""

from __future__ import annotations

import logging
import time

from aphadon.adapters.base import Adapter, ExecutionContext
from aphadon.core.models.action import Action, Receipt
from aphadon.core.models.platform import Platform

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Central registry and dispatcher for adapters.

    Features:
        - Register adapters by name
        - Mock mode: swap side-effecting adapters for a mock
        - Dry-run: validate without executing
        - Execute actions through the appropriate adapter
    """

    def __init__(self, mock_mode: bool = False):
        self._adapters: dict[str, Adapter] = {}
        self._mock_mode = mock_mode
        self._mock_adapter: Adapter | None = None

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    def set_mock_mode(self, enabled: bool, mock_adapter: Adapter | None = None) -> None:
        """Enable or disable mock mode.

        Args:
            enabled: Whether to use mock mode.
            mock_adapter: Optional custom mock adapter. If None, uses default.
        """
        self._mock_mode = enabled
        self._mock_adapter = mock_adapter

    def register(self, adapter: Adapter) -> None:
        """Register an adapter under its name."""
        name = adapter.name
        if name in self._adapters:
            logger.warning("Overwriting existing adapter: %s", name)
        self._adapters[name] = adapter
        logger.debug("Registered adapter: %s", name)

    def execute_action(
        self,
        action: Action,
        dotfiles_root: str = ".",
        home: str = "~",
        platform: Platform | None = None,
        dry_run: bool = False,
    ) -> Receipt:
        """Execute an action through the appropriate adapter.

        This is the main dispatch method. It:
        1. Resolves the adapter (or mock)
        2. Builds the execution context
        3. Checks the adapter is available (skipped on dry-run)
        4. Validates the action
        5. Executes (or dry-runs)
        6. Returns a Receipt (never raises)

        Adapters without side effects (notices) run for real even in
        mock and dry-run mode, so their skip reasons stay visible.
        """
        start_time = time.monotonic()

        context = ExecutionContext(
            action=action,
            dotfiles_root=dotfiles_root,
            home=home,
            platform=platform,
            dry_run=dry_run,
            params=action.params,
        )

        real = self._adapters.get(action.adapter)
        passthrough = real is not None and not getattr(real, "has_side_effects", True)

        # Resolve adapter
        adapter: Adapter | None = None
        if self._mock_mode and not passthrough:
            if self._mock_adapter is None:
                return Receipt.success(
                    adapter=action.adapter,
                    action_id=action.id,
                    output=f"[mock] {action.adapter}:{action.id} executed",
                    metadata={"mock": True, "dry_run": dry_run},
                )
            adapter = self._mock_adapter
        else:
            adapter = real

        if adapter is None:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"No adapter registered for '{action.adapter}'",
            )

        try:
            available = dry_run or adapter.is_available()
        except Exception:
            available = False
        if not available:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Adapter '{action.adapter}' is not available on this system",
            )

        # Validate
        try:
            is_valid, error_msg = adapter.validate(context)
            if not is_valid:
                return Receipt.failure(
                    adapter=action.adapter,
                    action_id=action.id,
                    error=f"Validation failed: {error_msg}",
                )
        except Exception as e:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Validation error: {e}",
            )

        # Dry run — validated but not executed
        if dry_run and not passthrough:
            return Receipt.skip(
                adapter=action.adapter,
                action_id=action.id,
                reason=f"[dry-run] Would execute {action.adapter}:{action.name or action.id}",
                metadata={"dry_run": True},
            )

        # Execute
        try:
            receipt = adapter.execute(context)
        except Exception as e:
            logger.error("Adapter %s raised during execution: %s", action.adapter, e)
            receipt = Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Unexpected error: {e}",
            )

        receipt.duration_ms = int((time.monotonic() - start_time) * 1000)
        return receipt
