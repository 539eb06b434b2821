"""
fieldops_services.lead_service -- the lead console and its follow-up tasks.

Responsibility:
    Fetch projects, quotes and email threads from the local mirror in one
    session, build the lead board through LeadViewCalculator, and turn a
    lead's recommended next step into a follow-up task.

Architecture position:
    Services -- orchestration over LeadViewCalculator + kernel selectors.

Invariants enforced:
    - Day counts and due times are measured from the injected clock.
    - At most one open follow-up task per project: asking again returns
      the existing task instead of creating a second one.

Failure modes:
    - LeadNotFoundError when the project is missing or soft-deleted.
    - SQLAlchemy errors propagate to the caller, who owns the transaction.

Usage:
    with session_scope() as session:
        service = LeadService(session, SystemClock(), get_active_config())
        board = service.board()
        service.create_follow_up_task(board.due()[0].project_id)
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from fieldops_config.schema import DEFAULT_CONFIG, FieldOpsConfig
from fieldops_engines.lead_views import LeadBoard, LeadView, LeadViewCalculator, NextAction
from fieldops_kernel.domain.clock import Clock, SystemClock
from fieldops_kernel.domain.values import quantize_amount
from fieldops_kernel.exceptions import LeadNotFoundError
from fieldops_kernel.logging_config import LogContext, get_logger
from fieldops_kernel.models.operations import Task
from fieldops_kernel.selectors.lead_selector import EmailThreadSelector, QuoteSelector
from fieldops_kernel.selectors.project_selector import ProjectSelector

logger = get_logger("services.lead")

FOLLOW_UP_TITLE_PREFIX = "Follow up: "

_TASK_TYPES = {
    NextAction.CALL: "Call",
    NextAction.EMAIL: "Email",
    NextAction.SMS: "Follow-up",
    NextAction.WAIT: "Follow-up",
    NextAction.ARCHIVE: "Other",
    NextAction.NONE: "Other",
}


class LeadService:
    """Lead board and follow-up task creation over the local mirror."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: FieldOpsConfig | None = None,
    ):
        self.session = session
        self.clock = clock or SystemClock()
        self.config = config or DEFAULT_CONFIG
        self._projects = ProjectSelector(session)
        self._quotes = QuoteSelector(session)
        self._threads = EmailThreadSelector(session)
        self._calculator = LeadViewCalculator(self.config.leads)

    def board(self, follow_up_only: bool = True) -> LeadBoard:
        """
        The lead console rows.

        Args:
            follow_up_only: Keep only the configured follow-up stages.  Pass
                False to see every non-deleted project with its stage.
        """
        with LogContext.bind(view="leads"):
            board = self._calculator.build(
                projects=self._projects.list_all(exclude_deleted=True),
                quotes=self._quotes.list_all(),
                threads=self._threads.list_all(),
                as_of=self.clock.now_utc(),
                follow_up_only=follow_up_only,
            )
            logger.info(
                "lead_board_loaded",
                extra={
                    "lead_count": board.lead_count,
                    "due_count": len(board.due()),
                    "follow_up_only": follow_up_only,
                },
            )
            return board

    def _open_follow_up(self, project_id: str) -> Task | None:
        stmt = (
            select(Task)
            .where(Task.project_id == project_id)
            .where(Task.status == self.config.leads.follow_up_task_status)
            .where(Task.archived_at.is_(None))
            .where(Task.title.startswith(FOLLOW_UP_TITLE_PREFIX))
            .order_by(Task.id)
        )
        return self.session.scalars(stmt).first()

    def _describe(self, lead: LeadView) -> str:
        lines = [
            f"Recommended action: {lead.next_step.action.value}",
            f"Reason: {lead.next_step.reason}",
            f"Lead stage: {lead.stage.value.replace('_', ' ')}",
        ]
        quote = lead.primary_quote
        if quote is not None:
            value = (
                f"{self.config.currency} {quantize_amount(quote.value)}"
                if quote.value is not None
                else "no value"
            )
            lines.append(f"Quote: {quote.status or 'unknown'}, {value}")
        days = lead.comms.days_since_customer
        if days is not None:
            lines.append(
                "Last customer activity: " + ("today" if days == 0 else f"{days} days ago")
            )
        return "\n".join(lines)

    def create_follow_up_task(self, project_id: str) -> str:
        """
        Create a task from a lead's recommended next step.

        Returns:
            Id of the new task, or of the open follow-up task that already
            exists for the project.

        Raises:
            LeadNotFoundError: the project is missing or soft-deleted.
        """
        with LogContext.bind(view="leads"):
            existing = self._open_follow_up(project_id)
            if existing is not None:
                logger.info(
                    "follow_up_task_exists",
                    extra={"project_id": project_id, "task_id": existing.id},
                )
                return existing.id

            lead = self.board(follow_up_only=False).get(project_id)
            if lead is None:
                raise LeadNotFoundError(project_id)

            now = self.clock.now_utc()
            due = lead.next_step.follow_up_due_at or now
            name = lead.project.customer_name or lead.project.title or "Lead"
            task = Task(
                title=FOLLOW_UP_TITLE_PREFIX + name,
                description=self._describe(lead),
                task_type=_TASK_TYPES[lead.next_step.action],
                status=self.config.leads.follow_up_task_status,
                project_id=project_id,
                due_date=due.date(),
            )
            self.session.add(task)
            self.session.flush()

            logger.info(
                "follow_up_task_created",
                extra={
                    "project_id": project_id,
                    "task_id": task.id,
                    "next_action": lead.next_step.action.value,
                },
            )
            return task.id
