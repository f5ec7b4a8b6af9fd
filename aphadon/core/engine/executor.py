"""
Engine executor — the central orchestration loop.

The engine takes a plan built by the planning services, executes its
actions in order through the adapter registry, collects receipts and
hands them back for persistence.

Flow:
    plan → execute (registry) → collect receipts → audit

Failures never stop the run (best-effort install), except for actions
marked ``critical``: bootstrap steps whose failure makes the rest of
the plan pointless.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from aphadon.adapters.registry import AdapterRegistry
from aphadon.core.models.action import Action, Receipt
from aphadon.core.models.platform import Platform
from aphadon.core.persistence.audit import AuditEntry, AuditWriter

logger = logging.getLogger(__name__)


@dataclass
class ExecutionPlan:
    """A planned set of actions to execute."""

    operation_id: str = ""
    automation: str = ""
    actions: list[Action] = field(default_factory=list)
    package_actions: dict[str, list[Action]] = field(default_factory=dict)
    filtered: dict[str, str] = field(default_factory=dict)

    @property
    def total_actions(self) -> int:
        return len(self.actions)

    def add(self, action: Action) -> None:
        self.actions.append(action)
        if action.for_package:
            self.package_actions.setdefault(action.for_package, []).append(action)

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "automation": self.automation,
            "actions": [a.model_dump(mode="json") for a in self.actions],
            "filtered": dict(self.filtered),
        }


@dataclass
class ExecutionReport:
    """Result of executing a plan."""

    operation_id: str = ""
    automation: str = ""
    receipts: list[Receipt] = field(default_factory=list)
    package_receipts: dict[str, list[Receipt]] = field(default_factory=dict)
    aborted: bool = False
    started_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    ended_at: str = ""

    @property
    def total(self) -> int:
        return len(self.receipts)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.receipts if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.receipts if r.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.receipts if r.skipped)

    @property
    def all_ok(self) -> bool:
        return self.failed == 0 and not self.aborted

    @property
    def status(self) -> str:
        if self.failed == 0 and not self.aborted:
            return "ok"
        if self.succeeded > 0:
            return "partial"
        return "failed"

    @property
    def failed_packages(self) -> list[str]:
        return [
            name
            for name, receipts in self.package_receipts.items()
            if any(r.failed for r in receipts)
        ]

    def package_status(self, name: str) -> str:
        """Overall status of one package: the worst of its receipts."""
        receipts = self.package_receipts.get(name, [])
        if any(r.failed for r in receipts):
            return "failed"
        if receipts and all(r.skipped for r in receipts):
            return "skipped"
        return "ok"

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "automation": self.automation,
            "status": self.status,
            "aborted": self.aborted,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "failed_packages": self.failed_packages,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


def execute_plan(
    plan: ExecutionPlan,
    registry: AdapterRegistry,
    dotfiles_root: str = ".",
    home: str = "~",
    platform: Platform | None = None,
    dry_run: bool = False,
) -> ExecutionReport:
    """Execute all actions in a plan through the adapter registry.

    Args:
        plan: The execution plan.
        registry: Adapter registry for dispatch.
        dotfiles_root: Dotfiles checkout (working dir for stow etc.).
        home: Home directory of the user being provisioned.
        platform: Target platform, passed to adapters.
        dry_run: If True, validate but don't execute.

    Returns:
        ExecutionReport with all receipts.
    """
    report = ExecutionReport(
        operation_id=plan.operation_id,
        automation=plan.automation,
    )

    for action in plan.actions:
        receipt = registry.execute_action(
            action=action,
            dotfiles_root=dotfiles_root,
            home=home,
            platform=platform,
            dry_run=dry_run,
        )

        report.receipts.append(receipt)
        if action.for_package:
            report.package_receipts.setdefault(action.for_package, []).append(receipt)

        status_marker = "✓" if receipt.ok else "✗" if receipt.failed else "⊘"
        logger.info(
            "%s %s → %s",
            status_marker,
            action.name or action.id,
            receipt.status,
        )
        if receipt.failed:
            logger.debug("%s failed: %s", action.id, receipt.error)

        if receipt.failed and action.critical:
            logger.error("Critical step failed, aborting: %s", action.name or action.id)
            report.aborted = True
            break

    report.ended_at = datetime.now(UTC).isoformat()
    return report


def write_audit_entries(
    report: ExecutionReport,
    audit_writer: AuditWriter,
    **context: object,
) -> None:
    """Write execution results to the audit ledger.

    Args:
        report: Execution report to audit.
        audit_writer: The audit writer instance.
        context: Extra context stored on the entry (profile, platform…).
    """
    entry = AuditEntry(
        operation_id=report.operation_id,
        operation_type=report.automation,
        automation=report.automation,
        status=report.status,
        actions_total=report.total,
        actions_succeeded=report.succeeded,
        actions_failed=report.failed,
        actions_skipped=report.skipped,
        packages_affected=list(report.package_receipts.keys()),
        failed_packages=report.failed_packages,
        context={k: v for k, v in context.items() if v is not None},
    )
    audit_writer.write(entry)


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"op-{now}-{short}"
