"""
Module: fieldops_engines.outstanding
Responsibility:
    Resolve the outstanding balance of completed projects by joining them
    to their accounting invoices and classifying each project's payment
    state.  Feeds the Outstanding Balances page and dashboard card.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import fieldops_kernel.domain and fieldops_config.schema.

Invariants enforced:
    - Each project yields at most one balance; invoices are grouped once
      by project_id so none is counted twice.
    - A terminal financial status excludes the project whatever its
      invoices say.
    - The contract-value fallback applies only when the project has no
      invoice rows at all.  Any invoice, even a PAID or VOIDED one,
      suppresses it.
    - Decimal-only arithmetic; missing amounts count as zero.
    - Deterministic ordering: balance descending, then project number,
      then id.

Failure modes:
    None.  Malformed amounts are already zero in the records and an
    empty join is a valid result.

Usage:
    from fieldops_engines.outstanding import OutstandingBalanceResolver

    resolver = OutstandingBalanceResolver(config.balances)
    report = resolver.resolve(projects=projects, invoices=invoices)
    report.total            # grand total
    report.top(5).items     # dashboard card rows
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Sequence

from fieldops_config.schema import OutstandingBalanceRules
from fieldops_engines.tracer import traced_engine
from fieldops_kernel.domain.records import InvoiceRecord, ProjectRecord
from fieldops_kernel.domain.values import ZERO, quantize_amount
from fieldops_kernel.logging_config import get_logger

logger = get_logger("engines.outstanding")


class BalanceSource(str, Enum):
    """Where a project's outstanding figure came from."""

    INVOICES = "invoices"
    CONTRACT_VALUE = "contract_value"


@dataclass(frozen=True)
class ProjectBalance:
    """
    A project with money still owed on it.

    ``has_invoices`` is True when any invoice row exists for the project,
    qualifying or not; the console shows a "No Invoice" badge otherwise.
    """

    project: ProjectRecord
    outstanding_balance: Decimal
    source: BalanceSource
    has_invoices: bool
    qualifying_invoice_count: int = 0

    @property
    def project_id(self) -> str:
        return self.project.id

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": self.project.id,
            "project_number": self.project.project_number,
            "title": self.project.title,
            "customer_name": self.project.customer_name,
            "financial_status": self.project.financial_status,
            "completed_date": (
                self.project.completed_date.isoformat()
                if self.project.completed_date
                else None
            ),
            "outstanding_balance": str(quantize_amount(self.outstanding_balance)),
            "source": self.source.value,
            "has_invoices": self.has_invoices,
            "qualifying_invoice_count": self.qualifying_invoice_count,
        }


@dataclass(frozen=True)
class OutstandingBalanceReport:
    """
    Ranked outstanding balances plus their grand total.

    Guarantees:
        - ``items`` is sorted by balance descending.
        - every item's balance is > 0.
        - ``total`` equals the sum of the item balances.
    """

    items: tuple[ProjectBalance, ...]
    currency: str = "AUD"

    @property
    def total(self) -> Decimal:
        return sum((item.outstanding_balance for item in self.items), ZERO)

    @property
    def project_count(self) -> int:
        return len(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def top(self, limit: int) -> OutstandingBalanceReport:
        """The ``limit`` largest balances; the total covers only those rows."""
        if limit < 0:
            raise ValueError("limit cannot be negative")
        return OutstandingBalanceReport(items=self.items[:limit], currency=self.currency)

    def balance_for(self, project_id: str) -> Decimal | None:
        for item in self.items:
            if item.project.id == project_id:
                return item.outstanding_balance
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "currency": self.currency,
            "project_count": self.project_count,
            "total": str(quantize_amount(self.total)),
            "items": [item.to_dict() for item in self.items],
        }


class OutstandingBalanceResolver:
    """
    Classify completed projects by what is still owed on them.

    Contract:
        ``resolve`` takes a snapshot of projects and the full, unfiltered
        invoice list and returns an ``OutstandingBalanceReport``.  Projects
        that are not eligible (wrong status, soft-deleted, or no positive
        contract value) are skipped, so passing an unfiltered project list
        is safe.

    Rules, per eligible project:
        1. terminal financial status -> excluded;
        2. qualifying invoices (status in the qualifying set and
           amount_due > 0) -> balance is the sum of their amount_due;
        3. no invoices at all and a fallback (or unset) financial status
           -> balance is total_project_value;
        4. otherwise 0, and zero balances are dropped.
    """

    def __init__(self, rules: OutstandingBalanceRules | None = None):
        self.rules = rules or OutstandingBalanceRules()
        self._terminal = frozenset(self.rules.terminal_financial_statuses)
        self._fallback = frozenset(self.rules.fallback_financial_statuses)
        self._qualifying = frozenset(
            s.upper() for s in self.rules.qualifying_invoice_statuses
        )

    def is_eligible(self, project: ProjectRecord) -> bool:
        return (
            project.status == self.rules.project_status
            and not project.is_deleted
            and project.total_project_value > ZERO
        )

    def is_terminal(self, project: ProjectRecord) -> bool:
        return project.financial_status in self._terminal

    def is_qualifying(self, invoice: InvoiceRecord) -> bool:
        return invoice.status in self._qualifying and invoice.amount_due > ZERO

    def allows_value_fallback(self, project: ProjectRecord) -> bool:
        if project.financial_status is None:
            return self.rules.fallback_when_status_unset
        return project.financial_status in self._fallback

    def resolve_project(
        self,
        project: ProjectRecord,
        project_invoices: Sequence[InvoiceRecord],
    ) -> ProjectBalance | None:
        """
        Balance for a single project, or None when nothing is owed.

        ``project_invoices`` must be every invoice whose project_id matches
        this project (qualifying or not).
        """
        if self.is_terminal(project):
            return None

        qualifying = [inv for inv in project_invoices if self.is_qualifying(inv)]
        has_invoices = len(project_invoices) > 0

        if qualifying:
            balance = sum((inv.amount_due for inv in qualifying), ZERO)
            source = BalanceSource.INVOICES
        elif not has_invoices and self.allows_value_fallback(project):
            balance = project.total_project_value
            source = BalanceSource.CONTRACT_VALUE
        else:
            return None

        if balance <= ZERO:
            return None

        return ProjectBalance(
            project=project,
            outstanding_balance=balance,
            source=source,
            has_invoices=has_invoices,
            qualifying_invoice_count=len(qualifying),
        )

    @staticmethod
    def group_invoices(
        invoices: Iterable[InvoiceRecord],
    ) -> dict[str, list[InvoiceRecord]]:
        """Index invoices by project_id; invoices with no project are dropped."""
        grouped: dict[str, list[InvoiceRecord]] = defaultdict(list)
        for invoice in invoices:
            if invoice.project_id is not None:
                grouped[invoice.project_id].append(invoice)
        return grouped

    @traced_engine("outstanding_balance", "1.0", ("projects", "invoices"))
    def resolve(
        self,
        *,
        projects: Sequence[ProjectRecord],
        invoices: Sequence[InvoiceRecord],
        currency: str = "AUD",
    ) -> OutstandingBalanceReport:
        """
        Resolve outstanding balances for a snapshot.

        Args:
            projects: Candidate projects (normally Completed, not deleted).
            invoices: Every invoice in the mirror, unfiltered.
            currency: Currency code carried onto the report.

        Returns:
            OutstandingBalanceReport sorted by balance descending.
        """
        by_project = self.group_invoices(invoices)

        seen: set[str] = set()
        balances: list[ProjectBalance] = []
        skipped = 0
        for project in projects:
            if project.id in seen:
                continue
            if not self.is_eligible(project):
                skipped += 1
                continue
            seen.add(project.id)
            balance = self.resolve_project(project, by_project.get(project.id, ()))
            if balance is not None:
                balances.append(balance)

        balances.sort(
            key=lambda b: (
                -b.outstanding_balance,
                b.project.project_number or "",
                b.project.id,
            )
        )
        report = OutstandingBalanceReport(items=tuple(balances), currency=currency)

        logger.debug(
            "outstanding_balances_resolved",
            extra={
                "project_count": len(projects),
                "eligible_count": len(seen),
                "ineligible_count": skipped,
                "invoice_count": len(invoices),
                "owing_count": report.project_count,
                "total": report.total,
            },
        )
        return report
