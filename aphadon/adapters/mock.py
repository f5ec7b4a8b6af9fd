"""
Mock adapter — test double that stands in for any install backend.

Used by ``--mock`` runs and the test-suite to exercise full install
plans without touching a package manager. It records every context it
receives so tests can assert what would have been installed, and can be
told to fail specific actions or packages.
"""

from __future__ import annotations

from aphadon.adapters.base import Adapter, ExecutionContext
from aphadon.core.models.action import Receipt


class MockAdapter(Adapter):
    """Records install requests and answers with configurable receipts."""

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        default_output: str = "[mock] installed",
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = default_output
        self._responses: dict[str, Receipt] = {}
        self._failing_packages: dict[str, str] = {}
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        """All execution contexts this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def packages_seen(self) -> list[str]:
        """Manifest names of every package action received, in order."""
        return [c.action.for_package for c in self._call_log if c.action.for_package]

    def is_available(self) -> bool:
        return self._available

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        """Set a custom response for a specific action ID."""
        self._responses[action_id] = receipt

    def set_failure(self, action_id: str, error: str = "Mock failure") -> None:
        """Configure a specific action to fail."""
        self._responses[action_id] = Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
        )

    def fail_package(self, package: str, error: str = "Mock install failure") -> None:
        """Fail every action planned for a manifest package."""
        self._failing_packages[package] = error

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)
        action = context.action

        if action.id in self._responses:
            return self._responses[action.id]

        if action.for_package and action.for_package in self._failing_packages:
            return Receipt.failure(
                adapter=self._name,
                action_id=action.id,
                error=self._failing_packages[action.for_package],
            )

        return Receipt.success(
            adapter=self._name,
            action_id=action.id,
            output=self._default_output,
            metadata={"mock": True, "target_adapter": action.adapter},
        )

    def reset(self) -> None:
        """Clear call log and configured responses."""
        self._call_log.clear()
        self._responses.clear()
        self._failing_packages.clear()
