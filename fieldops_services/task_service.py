"""
fieldops_services.task_service -- task visibility and auto-archive.

Responsibility:
    Apply the canonical task filter to the mirror's tasks, and stamp
    ``archived_at`` on completed tasks that have aged past the archive
    window.

Architecture position:
    Services -- orchestration over TaskVisibilityEngine + kernel selectors.

Invariants enforced:
    - Auto-archive is best-effort per task.  Each task is stamped inside
      its own savepoint; a task that disappeared or whose update failed
      is logged and skipped, and the rest are still archived.
    - ``archived_at`` comes from the injected clock.
"""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fieldops_config.schema import DEFAULT_CONFIG, FieldOpsConfig
from fieldops_engines.task_visibility import TaskViewer, TaskVisibilityEngine
from fieldops_kernel.domain.clock import Clock, SystemClock
from fieldops_kernel.domain.records import TaskRecord
from fieldops_kernel.logging_config import get_logger
from fieldops_kernel.models.operations import Task
from fieldops_kernel.selectors.operations_selector import TaskSelector

logger = get_logger("services.task")


class TaskService:
    """Task listing and auto-archive over the local mirror."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: FieldOpsConfig | None = None,
    ):
        self.session = session
        self.clock = clock or SystemClock()
        self.config = config or DEFAULT_CONFIG
        self._selector = TaskSelector(session)
        self._engine = TaskVisibilityEngine(self.config.tasks)

    def visible_tasks(self, viewer: TaskViewer | None = None) -> list[TaskRecord]:
        return self._engine.visible_tasks(
            tasks=self._selector.list_all(),
            as_of=self.clock.now_utc(),
            viewer=viewer,
        )

    def auto_archive(self) -> list[str]:
        """
        Mark stale completed tasks as archived.

        Returns:
            Ids of the tasks that were archived.
        """
        now = self.clock.now_utc()
        due = self._engine.select_for_archive(tasks=self._selector.list_all(), as_of=now)
        if not due:
            return []

        archived: list[str] = []
        for record in due:
            try:
                with self.session.begin_nested():
                    task = self.session.get(Task, record.id)
                    if task is None:
                        logger.warning(
                            "auto_archive_task_missing", extra={"task_id": record.id}
                        )
                        continue
                    task.archived_at = now
                    self.session.flush()
            except SQLAlchemyError:
                logger.warning(
                    "auto_archive_task_failed",
                    extra={"task_id": record.id},
                    exc_info=True,
                )
                continue
            archived.append(record.id)

        logger.info(
            "tasks_auto_archived",
            extra={"archived_count": len(archived), "selected_count": len(due)},
        )
        return archived
