"""
Module: fieldops_kernel.models.operations
Responsibility: Local mirror of the operational entities the console lists
    and archives: tasks, jobs and customers.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Jobs and customers are soft-deleted by setting ``deleted_at``; they
      stay restorable until purged.
    - A task is archived by setting ``archived_at``; archived tasks are
      never shown again.
"""

from datetime import date, datetime

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from fieldops_kernel.db.base import TrackedBase


class Task(TrackedBase):
    """A to-do item, optionally tied to a project and assigned to a user."""

    __tablename__ = "tasks"

    __table_args__ = (
        Index("idx_task_status", "status"),
        Index("idx_task_assignee", "assigned_to_user_id"),
    )

    title: Mapped[str | None] = mapped_column(nullable=True)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    task_type: Mapped[str | None] = mapped_column(String(30), nullable=True)

    status: Mapped[str | None] = mapped_column(String(30), nullable=True)

    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    archived_at: Mapped[datetime | None] = mapped_column(nullable=True)

    assigned_to_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    project_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    due_date: Mapped[date | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Task {self.id}: {self.status}>"


class Job(TrackedBase):
    """A scheduled site visit."""

    __tablename__ = "jobs"

    __table_args__ = (
        Index("idx_job_deleted_at", "deleted_at"),
    )

    job_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    customer_name: Mapped[str | None] = mapped_column(nullable=True)

    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Job {self.job_number or self.id}>"


class Customer(TrackedBase):
    """A customer (person or organisation contact)."""

    __tablename__ = "customers"

    __table_args__ = (
        Index("idx_customer_deleted_at", "deleted_at"),
    )

    name: Mapped[str | None] = mapped_column(nullable=True)

    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Customer {self.name or self.id}>"
