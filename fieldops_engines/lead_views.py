"""
Module: fieldops_engines.lead_views
Responsibility:
    The lead console's derived view.  For each open project it rolls up
    the email threads, picks the primary quote, buckets the project into
    a pipeline stage and recommends the next follow-up step.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  ``as_of`` is always
    passed in; the engine never reads the clock.

Invariants enforced:
    Stage rules apply in order and the first match wins:
        1. lost: project status is a lost keyword, a lost date is set, or
           the primary quote was declined
        2. won: project status is a won keyword, a completed date is set,
           or the primary quote was accepted
        3. a primary quote exists: "draft" gives quote_draft, any other
           status gives quote_sent.  A sent quote becomes engaged when the
           customer wrote within engaged_window_days, and stalled once they
           have been silent for stalled_after_days or more.
        4. a pricing checklist item is ticked: pricing
        5. otherwise: new
    Won and lost leads are inactive and need no action.
    Day counts are whole days and never negative.
    The board keeps follow-up stages only, due leads first, then larger
    quotes, then the most recent conversation.

Usage:
    calculator = LeadViewCalculator(config.leads)
    board = calculator.build(projects=projects, quotes=quotes,
                             threads=threads, as_of=now)
    board.due()             # leads with a follow-up due now
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Sequence, TypeVar

from fieldops_config.schema import LeadViewRules
from fieldops_engines.tracer import traced_engine
from fieldops_kernel.domain.records import (
    EmailThreadRecord,
    LeadStage,
    ProjectRecord,
    QuoteRecord,
)
from fieldops_kernel.domain.values import ZERO, as_utc, quantize_amount, whole_days_between
from fieldops_kernel.logging_config import get_logger

logger = get_logger("engines.lead_views")

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)

_QUOTE_DRAFT = "draft"
_QUOTE_SENT = "sent"
_QUOTE_ACCEPTED = "accepted"
_QUOTE_DECLINED = "declined"

R = TypeVar("R", QuoteRecord, EmailThreadRecord)


class NextAction(str, Enum):
    """Recommended follow-up for a lead."""

    NONE = "none"
    WAIT = "wait"
    EMAIL = "email"
    SMS = "sms"
    CALL = "call"
    ARCHIVE = "archive"


class TouchDirection(str, Enum):
    """Who sent the most recent message on a lead."""

    CUSTOMER = "customer"
    INTERNAL = "internal"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class CommsRollup:
    """Email activity across every thread of one project."""

    thread_count: int = 0
    has_unread: bool = False
    assigned_to: str | None = None
    last_message_at: datetime | None = None
    last_customer_message_at: datetime | None = None
    last_internal_message_at: datetime | None = None
    last_touch_direction: TouchDirection = TouchDirection.UNKNOWN
    days_since_customer: int | None = None
    days_since_internal: int | None = None


@dataclass(frozen=True)
class StageDecision:
    """A lead stage and the rule hits that produced it."""

    stage: LeadStage
    is_active: bool
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class NextStep:
    """What to do next.  ``follow_up_due_at`` is None when the lead should wait."""

    action: NextAction
    reason: str
    follow_up_due_at: datetime | None = None

    @property
    def is_due(self) -> bool:
        return self.follow_up_due_at is not None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class LeadView:
    """One row of the lead console."""

    project: ProjectRecord
    primary_quote: QuoteRecord | None
    decision: StageDecision
    comms: CommsRollup
    next_step: NextStep

    @property
    def project_id(self) -> str:
        return self.project.id

    @property
    def stage(self) -> LeadStage:
        return self.decision.stage

    def to_dict(self) -> dict[str, Any]:
        quote = self.primary_quote
        return {
            "project_id": self.project.id,
            "project_number": self.project.project_number,
            "title": self.project.title,
            "customer_name": self.project.customer_name,
            "lead_stage": self.decision.stage.value,
            "is_active": self.decision.is_active,
            "stage_reasons": list(self.decision.reasons),
            "primary_quote_id": quote.id if quote else None,
            "primary_quote_status": quote.status if quote else None,
            "primary_quote_value": (
                str(quantize_amount(quote.value))
                if quote is not None and quote.value is not None
                else None
            ),
            "thread_count": self.comms.thread_count,
            "has_unread": self.comms.has_unread,
            "assigned_to": self.comms.assigned_to,
            "last_message_at": _iso(self.comms.last_message_at),
            "last_customer_message_at": _iso(self.comms.last_customer_message_at),
            "last_internal_message_at": _iso(self.comms.last_internal_message_at),
            "last_touch_direction": self.comms.last_touch_direction.value,
            "days_since_customer": self.comms.days_since_customer,
            "days_since_internal": self.comms.days_since_internal,
            "next_action": self.next_step.action.value,
            "next_action_reason": self.next_step.reason,
            "follow_up_due_at": _iso(self.next_step.follow_up_due_at),
        }


@dataclass(frozen=True)
class LeadBoard:
    """Ordered lead rows as of a point in time."""

    as_of: datetime
    items: tuple[LeadView, ...]

    @property
    def lead_count(self) -> int:
        return len(self.items)

    def due(self) -> tuple[LeadView, ...]:
        return tuple(item for item in self.items if item.next_step.is_due)

    def get(self, project_id: str) -> LeadView | None:
        for item in self.items:
            if item.project_id == project_id:
                return item
        return None

    def stage_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for item in self.items:
            counts[item.stage.value] = counts.get(item.stage.value, 0) + 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        return {
            "as_of": self.as_of.isoformat(),
            "lead_count": self.lead_count,
            "due_count": len(self.due()),
            "stage_counts": self.stage_counts(),
            "items": [item.to_dict() for item in self.items],
        }


def _latest(a: datetime | None, b: datetime | None) -> datetime | None:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


class LeadViewCalculator:
    """
    Stage bucketing and next-step recommendation for open projects.

    Contract:
        ``build`` takes unfiltered projects, quotes and threads and returns
        a ``LeadBoard``.  Soft-deleted projects are skipped and a repeated
        project id is resolved once.  The single-lead methods
        (``rollup_comms``, ``primary_quote``, ``classify``, ``next_step``)
        are public so callers can explain one row.
    """

    def __init__(self, rules: LeadViewRules | None = None):
        self.rules = rules or LeadViewRules()
        self._lost = frozenset(s.lower() for s in self.rules.lost_project_statuses)
        self._won = frozenset(s.lower() for s in self.rules.won_project_statuses)
        self._pricing = tuple(s.lower() for s in self.rules.pricing_checklist_items)
        self._follow_up = frozenset(LeadStage(s) for s in self.rules.follow_up_stages)

    # -- per lead -----------------------------------------------------------

    def _days_since(self, as_of: datetime, moment: datetime | None) -> int | None:
        if moment is None:
            return None
        return max(0, whole_days_between(as_of, moment))

    def rollup_comms(
        self, threads: Sequence[EmailThreadRecord], as_of: datetime
    ) -> CommsRollup:
        """Aggregate one project's threads."""
        if not threads:
            return CommsRollup()

        last_message = last_customer = last_internal = None
        for thread in threads:
            last_message = _latest(last_message, as_utc(thread.last_message_at))
            last_customer = _latest(last_customer, as_utc(thread.last_customer_message_at))
            last_internal = _latest(last_internal, as_utc(thread.last_internal_message_at))

        if last_message is None:
            direction = TouchDirection.UNKNOWN
        elif last_customer == last_message:
            direction = TouchDirection.CUSTOMER
        elif last_internal == last_message:
            direction = TouchDirection.INTERNAL
        else:
            direction = TouchDirection.UNKNOWN

        # Owner of the most recently active thread that has one.
        by_activity = sorted(
            threads, key=lambda t: as_utc(t.activity_at) or _OLDEST, reverse=True
        )
        assigned_to = next((t.assigned_to for t in by_activity if t.assigned_to), None)

        return CommsRollup(
            thread_count=len(threads),
            has_unread=any(t.is_unread for t in threads),
            assigned_to=assigned_to,
            last_message_at=last_message,
            last_customer_message_at=last_customer,
            last_internal_message_at=last_internal,
            last_touch_direction=direction,
            days_since_customer=self._days_since(as_of, last_customer),
            days_since_internal=self._days_since(as_of, last_internal),
        )

    def primary_quote(
        self, project: ProjectRecord, quotes: Sequence[QuoteRecord]
    ) -> QuoteRecord | None:
        """The quote the project names as primary, else its newest quote."""
        if not quotes:
            return None
        if project.primary_quote_id is not None:
            for quote in quotes:
                if quote.id == project.primary_quote_id:
                    return quote
        return max(quotes, key=lambda q: (as_utc(q.created_at) or _OLDEST, q.id))

    def classify(
        self,
        project: ProjectRecord,
        quote: QuoteRecord | None,
        comms: CommsRollup,
    ) -> StageDecision:
        """Bucket a project into a lead stage."""
        status = (project.status or "").lower()
        quote_status = quote.status if quote is not None else None

        lost = [
            reason
            for reason, hit in (
                ("project_status_lost", status in self._lost),
                ("has_lost_date", project.lost_date is not None),
                ("quote_declined", quote_status == _QUOTE_DECLINED),
            )
            if hit
        ]
        if lost:
            return StageDecision(LeadStage.LOST, False, tuple(lost))

        won = [
            reason
            for reason, hit in (
                ("project_status_won", status in self._won),
                ("has_completed_date", project.completed_date is not None),
                ("quote_accepted", quote_status == _QUOTE_ACCEPTED),
            )
            if hit
        ]
        if won:
            return StageDecision(LeadStage.WON, False, tuple(won))

        if quote is not None:
            return self._classify_quoted(quote_status, comms)

        ticked = [label for label in self._pricing if label in project.checklist]
        if ticked:
            reasons = tuple(label.replace(" ", "_") for label in ticked)
            return StageDecision(LeadStage.PRICING, True, reasons)

        return StageDecision(LeadStage.NEW, True, ("no_quote_no_pricing",))

    def _classify_quoted(
        self, quote_status: str | None, comms: CommsRollup
    ) -> StageDecision:
        if quote_status == _QUOTE_DRAFT:
            return StageDecision(LeadStage.QUOTE_DRAFT, True, ("quote_status_draft",))

        if quote_status == _QUOTE_SENT:
            reasons = ["quote_status_sent"]
        elif quote_status:
            reasons = [f"quote_status_unhandled:{quote_status}"]
        else:
            reasons = ["quote_no_status"]

        stage = LeadStage.QUOTE_SENT
        silent_days = comms.days_since_customer
        if silent_days is not None:
            if silent_days <= self.rules.engaged_window_days:
                stage = LeadStage.ENGAGED
                reasons.append("recent_customer_activity")
            if silent_days >= self.rules.stalled_after_days:
                stage = LeadStage.STALLED
                reasons.append("stalled_no_customer_activity")
        return StageDecision(stage, True, tuple(reasons))

    def next_step(
        self, stage: LeadStage, comms: CommsRollup, as_of: datetime
    ) -> NextStep:
        """Recommend a follow-up; anything but WAIT and NONE is due at ``as_of``."""
        gap = self.rules.contact_gap_days
        customer_days = comms.days_since_customer
        internal_days = comms.days_since_internal

        if stage is LeadStage.WON:
            return NextStep(NextAction.NONE, "Won")
        if stage is LeadStage.LOST:
            return NextStep(NextAction.NONE, "Lost")
        if comms.has_unread:
            return NextStep(NextAction.EMAIL, "Unread customer message", as_of)

        if stage is LeadStage.ENGAGED:
            if internal_days is not None and internal_days >= gap:
                return NextStep(NextAction.CALL, "Engaged lead; time to close", as_of)
            return NextStep(NextAction.WAIT, "Recently contacted; wait")

        if stage is LeadStage.QUOTE_SENT:
            if customer_days is None and internal_days is not None and internal_days >= gap:
                return NextStep(
                    NextAction.SMS, "Quote sent; no customer response yet", as_of
                )
            if customer_days is not None and customer_days >= gap:
                return NextStep(
                    NextAction.CALL,
                    "Customer replied earlier; progress conversation",
                    as_of,
                )
            return NextStep(NextAction.WAIT, "Quote recently sent; wait")

        if stage is LeadStage.STALLED:
            if customer_days is not None and customer_days >= self.rules.archive_after_days:
                return NextStep(
                    NextAction.ARCHIVE,
                    f"No customer contact for {customer_days} days; archive",
                    as_of,
                )
            return NextStep(NextAction.EMAIL, "Stalled; send follow-up", as_of)

        if stage is LeadStage.QUOTE_DRAFT:
            return NextStep(NextAction.EMAIL, "Draft quote; progress toward sending", as_of)
        if stage is LeadStage.PRICING:
            return NextStep(NextAction.EMAIL, "Pricing stage; progress toward quote", as_of)
        return NextStep(NextAction.EMAIL, "New lead; make first contact", as_of)

    def view(
        self,
        project: ProjectRecord,
        quotes: Sequence[QuoteRecord],
        threads: Sequence[EmailThreadRecord],
        as_of: datetime,
    ) -> LeadView:
        """The full lead row for one project and its own quotes and threads."""
        quote = self.primary_quote(project, quotes)
        comms = self.rollup_comms(threads, as_of)
        decision = self.classify(project, quote, comms)
        return LeadView(
            project=project,
            primary_quote=quote,
            decision=decision,
            comms=comms,
            next_step=self.next_step(decision.stage, comms, as_of),
        )

    # -- board --------------------------------------------------------------

    @staticmethod
    def group_by_project(records: Iterable[R]) -> dict[str, list[R]]:
        """Index quotes or threads by project_id; unlinked records are dropped."""
        grouped: dict[str, list[R]] = defaultdict(list)
        for record in records:
            if record.project_id is not None:
                grouped[record.project_id].append(record)
        return grouped

    @staticmethod
    def _ordered(views: list[LeadView]) -> tuple[LeadView, ...]:
        ordered = sorted(views, key=lambda v: (v.project.project_number or "", v.project_id))
        ordered.sort(key=lambda v: v.comms.last_message_at or _OLDEST, reverse=True)
        ordered.sort(
            key=lambda v: (
                v.primary_quote is not None and v.primary_quote.value is not None,
                v.primary_quote.value if v.primary_quote and v.primary_quote.value else ZERO,
            ),
            reverse=True,
        )
        ordered.sort(key=lambda v: not v.next_step.is_due)
        return tuple(ordered)

    @traced_engine("lead_views", "1.0", ("projects", "quotes", "threads", "as_of"))
    def build(
        self,
        *,
        projects: Sequence[ProjectRecord],
        quotes: Sequence[QuoteRecord],
        threads: Sequence[EmailThreadRecord],
        as_of: datetime,
        follow_up_only: bool = True,
    ) -> LeadBoard:
        """
        Lead rows for every open project.

        Args:
            projects: Projects from the mirror, any status.
            quotes: Every quote, unfiltered.
            threads: Every email thread, unfiltered.
            as_of: The moment day counts and due times are measured from.
            follow_up_only: Keep only the configured follow-up stages.
        """
        as_of = as_utc(as_of)
        quotes_by_project = self.group_by_project(quotes)
        threads_by_project = self.group_by_project(threads)

        seen: set[str] = set()
        views: list[LeadView] = []
        for project in projects:
            if project.is_deleted or project.id in seen:
                continue
            seen.add(project.id)
            view = self.view(
                project,
                quotes_by_project.get(project.id, ()),
                threads_by_project.get(project.id, ()),
                as_of,
            )
            if follow_up_only and view.stage not in self._follow_up:
                continue
            views.append(view)

        board = LeadBoard(as_of=as_of, items=self._ordered(views))
        logger.debug(
            "lead_board_built",
            extra={
                "project_count": len(projects),
                "quote_count": len(quotes),
                "thread_count": len(threads),
                "lead_count": board.lead_count,
                "due_count": len(board.due()),
            },
        )
        return board
