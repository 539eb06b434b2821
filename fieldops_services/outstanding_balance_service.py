"""
fieldops_services.outstanding_balance_service -- fetch snapshots, resolve balances.

Responsibility:
    Wire the project and invoice selectors to the pure
    OutstandingBalanceResolver.  Two entry points:

    - ``OutstandingBalanceView`` -- holds the two snapshots, which may
      arrive in either order, and produces a report only once both are
      present.  Replacing either snapshot discards the cached report.
    - ``OutstandingBalanceService`` -- fetches both snapshots from the
      local mirror in one session and returns the full report or the
      dashboard top-N.

Architecture position:
    Services -- orchestration over engines + kernel selectors.

Invariants enforced:
    - The resolver never runs on a partial snapshot.
    - Identical snapshots give an identical (cached) report.
    - No writes: selectors are read-only and the view holds no session.

Failure modes:
    - SnapshotIncompleteError from ``OutstandingBalanceView.require_report``
      when an input is missing.
    - SQLAlchemy errors from the selectors propagate to the caller.

Usage:
    with session_scope() as session:
        service = OutstandingBalanceService(session, get_active_config())
        report = service.load_report()
"""

from __future__ import annotations

from typing import Sequence

from sqlalchemy.orm import Session

from fieldops_config.schema import DEFAULT_CONFIG, FieldOpsConfig
from fieldops_engines.outstanding import (
    OutstandingBalanceReport,
    OutstandingBalanceResolver,
)
from fieldops_kernel.domain.records import InvoiceRecord, ProjectRecord
from fieldops_kernel.exceptions import SnapshotIncompleteError
from fieldops_kernel.logging_config import LogContext, get_logger
from fieldops_kernel.selectors.project_selector import InvoiceSelector, ProjectSelector

logger = get_logger("services.outstanding_balance")


class OutstandingBalanceView:
    """
    Snapshot holder for the outstanding balances view.

    Contract:
        Call ``set_projects`` and ``set_invoices`` as each fetch resolves.
        ``report`` is None until both have been supplied, except that an
        empty eligible-project set needs no invoices at all.
    """

    def __init__(self, config: FieldOpsConfig | None = None):
        self.config = config or DEFAULT_CONFIG
        self.resolver = OutstandingBalanceResolver(self.config.balances)
        self._projects: tuple[ProjectRecord, ...] | None = None
        self._invoices: tuple[InvoiceRecord, ...] | None = None
        self._report: OutstandingBalanceReport | None = None

    def set_projects(self, projects: Sequence[ProjectRecord]) -> None:
        self._projects = tuple(projects)
        self._report = None

    def set_invoices(self, invoices: Sequence[InvoiceRecord]) -> None:
        self._invoices = tuple(invoices)
        self._report = None

    def clear(self) -> None:
        self._projects = None
        self._invoices = None
        self._report = None

    @property
    def needs_invoices(self) -> bool:
        """True once projects are loaded and at least one is eligible."""
        if self._projects is None:
            return False
        return any(self.resolver.is_eligible(p) for p in self._projects)

    @property
    def is_ready(self) -> bool:
        if self._projects is None:
            return False
        return self._invoices is not None or not self.needs_invoices

    @property
    def report(self) -> OutstandingBalanceReport | None:
        if not self.is_ready:
            return None
        if self._report is None:
            self._report = self.resolver.resolve(
                projects=self._projects,
                invoices=self._invoices or (),
                currency=self.config.currency,
            )
        return self._report

    def require_report(self) -> OutstandingBalanceReport:
        report = self.report
        if report is None:
            missing = []
            if self._projects is None:
                missing.append("projects")
            if self._invoices is None:
                missing.append("invoices")
            raise SnapshotIncompleteError("outstanding_balances", tuple(missing))
        return report


class OutstandingBalanceService:
    """
    Outstanding balances computed from the local record mirror.

    Contract:
        Reads through the caller's session; never writes.  The invoice
        table is not queried when no project is eligible.
    """

    def __init__(self, session: Session, config: FieldOpsConfig | None = None):
        self.session = session
        self.config = config or DEFAULT_CONFIG
        self._projects = ProjectSelector(session)
        self._invoices = InvoiceSelector(session)

    def fetch_candidate_projects(self) -> list[ProjectRecord]:
        """Projects in the configured status, not deleted, with positive value."""
        projects = self._projects.list_by_status(
            self.config.balances.project_status, exclude_deleted=True
        )
        return [p for p in projects if p.total_project_value > 0]

    def load_report(self) -> OutstandingBalanceReport:
        """Fetch both snapshots and resolve the full report."""
        with LogContext.bind(view="outstanding_balances"):
            view = OutstandingBalanceView(self.config)
            view.set_projects(self.fetch_candidate_projects())
            if view.needs_invoices:
                view.set_invoices(self._invoices.list_all())
            report = view.require_report()

            logger.info(
                "outstanding_balances_loaded",
                extra={
                    "project_count": report.project_count,
                    "total": report.total,
                    "currency": report.currency,
                },
            )
            return report

    def dashboard_report(self, limit: int | None = None) -> OutstandingBalanceReport:
        """The dashboard card: the largest ``limit`` balances (config default)."""
        if limit is None:
            limit = self.config.balances.dashboard_limit
        return self.load_report().top(limit)
