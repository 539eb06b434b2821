"""
Records -- frozen snapshots of backend entities as the engines see them.

Responsibility:
    One dataclass per entity the derived views read.  Each states which
    fields are optional and applies the defaulting rules from
    ``fieldops_kernel.domain.values`` at construction, so engines never
    deal with missing keys, string amounts or naive timestamps.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Selectors build records from ORM
    rows; ``from_mapping`` builds them from raw backend JSON.

Invariants enforced:
    - ``id`` is always a non-empty string.
    - Monetary fields are Decimal.  Only a quote value may be None, meaning
      no value was entered.
    - Timestamps are aware UTC or None.
    - Blank status strings are None ("unset").
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from fieldops_kernel.domain.values import (
    ZERO,
    blank_to_none,
    parse_date,
    parse_datetime,
    to_amount,
)

PROJECT_STATUS_COMPLETED = "Completed"
TASK_STATUS_COMPLETED = "Completed"
TASK_STATUS_CANCELLED = "Cancelled"


class LeadStage(str, Enum):
    """Where an open project sits in the sales pipeline."""

    NEW = "new"
    PRICING = "pricing"
    QUOTE_DRAFT = "quote_draft"
    QUOTE_SENT = "quote_sent"
    ENGAGED = "engaged"
    STALLED = "stalled"
    WON = "won"
    LOST = "lost"


def checked_items(value: Any) -> tuple[str, ...]:
    """Labels of the ticked quote-checklist entries, lower-cased."""
    if not isinstance(value, (list, tuple)):
        return ()
    labels = []
    for entry in value:
        if not isinstance(entry, Mapping) or entry.get("checked") is not True:
            continue
        label = blank_to_none(entry.get("item"))
        if label is not None:
            labels.append(label.lower())
    return tuple(labels)


def _require_id(data: Mapping[str, Any], entity: str) -> str:
    record_id = blank_to_none(data.get("id"))
    if record_id is None:
        raise ValueError(f"{entity} record has no id")
    return record_id


@dataclass(frozen=True)
class ProjectRecord:
    """
    A project as read from the backend.

    ``checklist`` holds the lower-cased labels of the ticked quote-checklist
    items.
    """

    id: str
    project_number: str | None = None
    title: str | None = None
    customer_name: str | None = None
    status: str | None = None
    financial_status: str | None = None
    total_project_value: Decimal = ZERO
    completed_date: date | None = None
    deleted_at: datetime | None = None
    lost_date: date | None = None
    primary_quote_id: str | None = None
    checklist: tuple[str, ...] = ()

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ProjectRecord:
        return cls(
            id=_require_id(data, "Project"),
            project_number=blank_to_none(data.get("project_number")),
            title=blank_to_none(data.get("title")),
            customer_name=blank_to_none(data.get("customer_name")),
            status=blank_to_none(data.get("status")),
            financial_status=blank_to_none(data.get("financial_status")),
            total_project_value=to_amount(data.get("total_project_value")),
            completed_date=parse_date(data.get("completed_date")),
            deleted_at=parse_datetime(data.get("deleted_at")),
            lost_date=parse_date(data.get("lost_date")),
            primary_quote_id=blank_to_none(data.get("primary_quote_id")),
            checklist=checked_items(data.get("quote_checklist")),
        )


@dataclass(frozen=True)
class InvoiceRecord:
    """An accounting-system invoice mirrored locally; ``project_id`` is not unique."""

    id: str
    project_id: str | None = None
    invoice_number: str | None = None
    status: str | None = None
    amount_due: Decimal = ZERO

    def __post_init__(self) -> None:
        if self.status is not None:
            object.__setattr__(self, "status", self.status.strip().upper() or None)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> InvoiceRecord:
        return cls(
            id=_require_id(data, "Invoice"),
            project_id=blank_to_none(data.get("project_id")),
            invoice_number=blank_to_none(data.get("invoice_number")),
            status=blank_to_none(data.get("status")),
            amount_due=to_amount(data.get("amount_due")),
        )


@dataclass(frozen=True)
class TaskRecord:
    """A task as read from the backend."""

    id: str
    title: str | None = None
    status: str | None = None
    completed_at: datetime | None = None
    archived_at: datetime | None = None
    assigned_to_user_id: str | None = None
    project_id: str | None = None
    due_date: date | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == TASK_STATUS_COMPLETED

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> TaskRecord:
        return cls(
            id=_require_id(data, "Task"),
            title=blank_to_none(data.get("title")),
            status=blank_to_none(data.get("status")),
            completed_at=parse_datetime(data.get("completed_at")),
            archived_at=parse_datetime(data.get("archived_at")),
            assigned_to_user_id=blank_to_none(data.get("assigned_to_user_id")),
            project_id=blank_to_none(data.get("project_id")),
            due_date=parse_date(data.get("due_date")),
        )


@dataclass(frozen=True)
class QuoteRecord:
    """A quote raised on a project.  ``status`` is lower-cased; ``value`` may be unknown."""

    id: str
    project_id: str | None = None
    status: str | None = None
    value: Decimal | None = None
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.status is not None:
            object.__setattr__(self, "status", self.status.strip().lower() or None)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> QuoteRecord:
        raw_value = data.get("value")
        return cls(
            id=_require_id(data, "Quote"),
            project_id=blank_to_none(data.get("project_id")),
            status=blank_to_none(data.get("status")),
            value=None if raw_value is None else to_amount(raw_value),
            created_at=parse_datetime(data.get("created_at")),
        )


@dataclass(frozen=True)
class EmailThreadRecord:
    """
    An email conversation linked to a project.

    ``last_customer_message_at`` and ``last_internal_message_at`` split
    the thread's traffic by direction; ``last_message_at`` covers both.
    """

    id: str
    project_id: str | None = None
    is_unread: bool = False
    assigned_to: str | None = None
    last_message_at: datetime | None = None
    last_customer_message_at: datetime | None = None
    last_internal_message_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def activity_at(self) -> datetime | None:
        """The later of the last message and the last update."""
        stamps = [t for t in (self.last_message_at, self.updated_at) if t is not None]
        return max(stamps) if stamps else None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> EmailThreadRecord:
        return cls(
            id=_require_id(data, "EmailThread"),
            project_id=blank_to_none(data.get("project_id")),
            is_unread=data.get("is_unread") is True,
            assigned_to=blank_to_none(data.get("assigned_to")),
            last_message_at=parse_datetime(data.get("last_message_at")),
            last_customer_message_at=parse_datetime(data.get("last_customer_message_at")),
            last_internal_message_at=parse_datetime(data.get("last_internal_message_at")),
            updated_at=parse_datetime(data.get("updated_at")),
        )


@dataclass(frozen=True)
class DeletedRecord:
    """
    A soft-deleted job or customer awaiting restore or purge.

    ``kind`` is "job" or "customer"; ``label`` is whatever the archive
    listing shows for it (job number or customer name).
    """

    kind: str
    id: str
    deleted_at: datetime
    label: str | None = None
    customer_name: str | None = None
