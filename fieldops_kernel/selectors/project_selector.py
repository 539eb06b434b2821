"""
Module: fieldops_kernel.selectors.project_selector
Responsibility: Read projects and their invoices as frozen records.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Selectors filter on status and soft deletion in SQL only; any further
      narrowing (positive value, financial status, lead stage) belongs to
      the caller.
    - Results are ordered by id so repeated fetches of an unchanged mirror
      produce identical snapshots.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from fieldops_kernel.domain.records import InvoiceRecord, ProjectRecord, checked_items
from fieldops_kernel.domain.values import as_utc, blank_to_none, to_amount
from fieldops_kernel.logging_config import get_logger
from fieldops_kernel.models.project import Project, XeroInvoice
from fieldops_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.project")


class ProjectSelector(BaseSelector[Project]):
    """Selector for project queries."""

    def __init__(self, session: Session):
        super().__init__(session)

    def _to_record(self, project: Project) -> ProjectRecord:
        return ProjectRecord(
            id=project.id,
            project_number=blank_to_none(project.project_number),
            title=blank_to_none(project.title),
            customer_name=blank_to_none(project.customer_name),
            status=blank_to_none(project.status),
            financial_status=blank_to_none(project.financial_status),
            total_project_value=to_amount(project.total_project_value),
            completed_date=project.completed_date,
            deleted_at=as_utc(project.deleted_at),
            lost_date=project.lost_date,
            primary_quote_id=blank_to_none(project.primary_quote_id),
            checklist=checked_items(project.quote_checklist),
        )

    def list_by_status(
        self,
        status: str,
        exclude_deleted: bool = True,
    ) -> list[ProjectRecord]:
        """
        All projects in ``status``.

        Args:
            status: Project status to match exactly (e.g. "Completed").
            exclude_deleted: Skip soft-deleted projects.
        """
        stmt = select(Project).where(Project.status == status)
        if exclude_deleted:
            stmt = stmt.where(Project.deleted_at.is_(None))
        stmt = stmt.order_by(Project.id)

        records = [self._to_record(p) for p in self.session.scalars(stmt)]
        logger.debug(
            "projects_fetched",
            extra={
                "status": status,
                "exclude_deleted": exclude_deleted,
                "count": len(records),
            },
        )
        return records

    def list_all(self, exclude_deleted: bool = True) -> list[ProjectRecord]:
        """Every project regardless of status, optionally skipping soft-deleted ones."""
        stmt = select(Project)
        if exclude_deleted:
            stmt = stmt.where(Project.deleted_at.is_(None))
        stmt = stmt.order_by(Project.id)

        records = [self._to_record(p) for p in self.session.scalars(stmt)]
        logger.debug(
            "projects_fetched",
            extra={"exclude_deleted": exclude_deleted, "count": len(records)},
        )
        return records


class InvoiceSelector(BaseSelector[XeroInvoice]):
    """Selector for mirrored accounting invoices."""

    def __init__(self, session: Session):
        super().__init__(session)

    def _to_record(self, invoice: XeroInvoice) -> InvoiceRecord:
        return InvoiceRecord(
            id=invoice.id,
            project_id=blank_to_none(invoice.project_id),
            invoice_number=blank_to_none(invoice.invoice_number),
            status=blank_to_none(invoice.status),
            amount_due=to_amount(invoice.amount_due),
        )

    def list_all(self) -> list[InvoiceRecord]:
        """Every invoice in the mirror, unfiltered."""
        stmt = select(XeroInvoice).order_by(XeroInvoice.id)
        records = [self._to_record(i) for i in self.session.scalars(stmt)]
        logger.debug("invoices_fetched", extra={"count": len(records)})
        return records

