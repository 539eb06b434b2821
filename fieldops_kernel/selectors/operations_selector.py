"""
Module: fieldops_kernel.selectors.operations_selector
Responsibility: Read tasks and the soft-deleted job/customer archive as
    frozen records.
Architecture position: Kernel > Selectors.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from fieldops_kernel.domain.records import DeletedRecord, TaskRecord
from fieldops_kernel.domain.values import as_utc, blank_to_none
from fieldops_kernel.logging_config import get_logger
from fieldops_kernel.models.operations import Customer, Job, Task
from fieldops_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.operations")


class TaskSelector(BaseSelector[Task]):
    """Selector for task queries."""

    def __init__(self, session: Session):
        super().__init__(session)

    def _to_record(self, task: Task) -> TaskRecord:
        return TaskRecord(
            id=task.id,
            title=blank_to_none(task.title),
            status=blank_to_none(task.status),
            completed_at=as_utc(task.completed_at),
            archived_at=as_utc(task.archived_at),
            assigned_to_user_id=blank_to_none(task.assigned_to_user_id),
            project_id=blank_to_none(task.project_id),
            due_date=task.due_date,
        )

    def list_all(self) -> list[TaskRecord]:
        stmt = select(Task).order_by(Task.id)
        records = [self._to_record(t) for t in self.session.scalars(stmt)]
        logger.debug("tasks_fetched", extra={"count": len(records)})
        return records


class ArchiveSelector(BaseSelector[Job]):
    """
    Selector for soft-deleted jobs and customers.

    Both listings are newest deletion first.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def list_deleted_jobs(self) -> list[DeletedRecord]:
        stmt = (
            select(Job)
            .where(Job.deleted_at.is_not(None))
            .order_by(Job.deleted_at.desc(), Job.id)
        )
        return [
            DeletedRecord(
                kind="job",
                id=job.id,
                deleted_at=as_utc(job.deleted_at),
                label=job.job_number,
                customer_name=job.customer_name,
            )
            for job in self.session.scalars(stmt)
        ]

    def list_deleted_customers(self) -> list[DeletedRecord]:
        stmt = (
            select(Customer)
            .where(Customer.deleted_at.is_not(None))
            .order_by(Customer.deleted_at.desc(), Customer.id)
        )
        return [
            DeletedRecord(
                kind="customer",
                id=customer.id,
                deleted_at=as_utc(customer.deleted_at),
                label=customer.name,
                customer_name=customer.name,
            )
            for customer in self.session.scalars(stmt)
        ]
