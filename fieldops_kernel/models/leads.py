"""
Module: fieldops_kernel.models.leads
Responsibility: Local mirror of the sales-side records the lead console
    reads: quotes raised on projects and the email threads about them.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - ``project_id`` is a plain indexed column on both tables, not a
      foreign key; a project has zero or many quotes and threads.
    - A quote's ``created_at`` is the backend creation time when the row
      is synced with one; otherwise the insert time.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from fieldops_kernel.db.base import TrackedBase


class Quote(TrackedBase):
    """A priced quote sent (or about to be sent) to the customer."""

    __tablename__ = "quotes"

    __table_args__ = (
        Index("idx_quote_project", "project_id"),
    )

    project_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    status: Mapped[str | None] = mapped_column(String(30), nullable=True)

    value: Mapped[Decimal | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Quote {self.id}: {self.status} {self.value}>"


class EmailThread(TrackedBase):
    """An email conversation, split into customer and internal traffic."""

    __tablename__ = "email_threads"

    __table_args__ = (
        Index("idx_email_thread_project", "project_id"),
    )

    project_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    subject: Mapped[str | None] = mapped_column(nullable=True)

    is_unread: Mapped[bool] = mapped_column(default=False)

    assigned_to: Mapped[str | None] = mapped_column(nullable=True)

    last_message_at: Mapped[datetime | None] = mapped_column(nullable=True)

    last_customer_message_at: Mapped[datetime | None] = mapped_column(nullable=True)

    last_internal_message_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<EmailThread {self.subject or self.id}>"
