"""
Module: fieldops_kernel.models.project
Responsibility: Local mirror of backend Project rows and the accounting
    system invoices raised against them.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - XeroInvoice.project_id is NOT unique: a project has zero or many
      invoices.  It is a plain indexed column rather than a foreign key
      because the accounting mirror can reference projects that have not
      synced yet.
    - Money columns are Numeric, never float.

Failure modes:
    - IntegrityError on duplicate primary key during sync.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from fieldops_kernel.db.base import TrackedBase


class Project(TrackedBase):
    """
    A customer project (quote through completion).

    Non-goals:
        - Does NOT store an outstanding balance; balances are derived at
          read time from invoices.
    """

    __tablename__ = "projects"

    __table_args__ = (
        Index("idx_project_status", "status"),
        Index("idx_project_deleted_at", "deleted_at"),
    )

    project_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    title: Mapped[str | None] = mapped_column(nullable=True)

    customer_name: Mapped[str | None] = mapped_column(nullable=True)

    status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    financial_status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    total_project_value: Mapped[Decimal | None] = mapped_column(nullable=True)

    completed_date: Mapped[date | None] = mapped_column(nullable=True)

    lost_date: Mapped[date | None] = mapped_column(nullable=True)

    primary_quote_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # [{"item": "Pricing Requested", "checked": true}, ...]
    quote_checklist: Mapped[list | None] = mapped_column(JSON, nullable=True)

    # Soft delete marker
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Project {self.project_number or self.id}: {self.status}>"


class XeroInvoice(TrackedBase):
    """An invoice mirrored from the accounting system."""

    __tablename__ = "xero_invoices"

    __table_args__ = (
        Index("idx_xero_invoice_project", "project_id"),
    )

    project_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    invoice_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    status: Mapped[str | None] = mapped_column(String(20), nullable=True)

    amount_due: Mapped[Decimal | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<XeroInvoice {self.invoice_number or self.id}: {self.status} {self.amount_due}>"
