"""
Module: fieldops_engines.task_visibility
Responsibility:
    Canonical task filtering shared by the list and board views, and
    selection of completed tasks that are due for auto-archive.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    Rules apply in order and the first match hides the task:
        1. status in hidden_statuses (Cancelled)
        2. archived_at is set
        3. completed more than auto_archive_days whole days ago
        4. technician viewers see only tasks assigned to them
    A completed task with no completed_at never ages out.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Sequence

from fieldops_config.schema import TaskVisibilityRules
from fieldops_engines.tracer import traced_engine
from fieldops_kernel.domain.records import TaskRecord
from fieldops_kernel.domain.values import whole_days_between
from fieldops_kernel.logging_config import get_logger

logger = get_logger("engines.task_visibility")


class HiddenReason(str, Enum):
    """Why a task is not shown."""

    HIDDEN_STATUS = "hidden_status"
    ARCHIVED = "archived"
    AUTO_ARCHIVED = "auto_archived"
    NOT_ASSIGNED = "not_assigned"


@dataclass(frozen=True)
class TaskViewer:
    """Who is looking.  Technicians only see their own tasks."""

    user_id: str | None = None
    technician_only: bool = False


class TaskVisibilityEngine:
    """Decide which tasks a viewer sees and which are due for archive."""

    def __init__(self, rules: TaskVisibilityRules | None = None):
        self.rules = rules or TaskVisibilityRules()

    def completed_age_days(self, task: TaskRecord, as_of: datetime) -> int | None:
        if task.status != self.rules.completed_status or task.completed_at is None:
            return None
        return whole_days_between(as_of, task.completed_at)

    def is_past_auto_archive(self, task: TaskRecord, as_of: datetime) -> bool:
        age = self.completed_age_days(task, as_of)
        return age is not None and age > self.rules.auto_archive_days

    def hidden_reason(
        self,
        task: TaskRecord,
        as_of: datetime,
        viewer: TaskViewer | None = None,
    ) -> HiddenReason | None:
        """The first rule that hides ``task``, or None if it is visible."""
        if task.status in self.rules.hidden_statuses:
            return HiddenReason.HIDDEN_STATUS
        if task.archived_at is not None:
            return HiddenReason.ARCHIVED
        if self.is_past_auto_archive(task, as_of):
            return HiddenReason.AUTO_ARCHIVED
        if (
            viewer is not None
            and viewer.technician_only
            and viewer.user_id
            and task.assigned_to_user_id != viewer.user_id
        ):
            return HiddenReason.NOT_ASSIGNED
        return None

    @traced_engine("task_visibility", "1.0", ("tasks", "as_of"))
    def visible_tasks(
        self,
        *,
        tasks: Sequence[TaskRecord],
        as_of: datetime,
        viewer: TaskViewer | None = None,
    ) -> list[TaskRecord]:
        """Tasks that survive every visibility rule, in input order."""
        return [t for t in tasks if self.hidden_reason(t, as_of, viewer) is None]

    @traced_engine("task_auto_archive", "1.0", ("tasks", "as_of"))
    def select_for_archive(
        self,
        *,
        tasks: Sequence[TaskRecord],
        as_of: datetime,
    ) -> list[TaskRecord]:
        """Completed, not yet archived, and older than the archive window."""
        selected = [
            t
            for t in tasks
            if t.archived_at is None and self.is_past_auto_archive(t, as_of)
        ]
        logger.debug(
            "auto_archive_selected",
            extra={"task_count": len(tasks), "selected_count": len(selected)},
        )
        return selected
