"""
FieldOpsConfig schema.

The injected configuration for every derived view.  Pages used to read
feature toggles and status lists ambiently; here they are one frozen
object passed explicitly to engines and services.  YAML fragments are
parsed into these types by the loader.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from fieldops_kernel.domain.records import (
    PROJECT_STATUS_COMPLETED,
    TASK_STATUS_CANCELLED,
    TASK_STATUS_COMPLETED,
    LeadStage,
)

# ---------------------------------------------------------------------------
# Outstanding balances
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OutstandingBalanceRules:
    """Status vocabularies and limits for the outstanding balance view."""

    project_status: str = PROJECT_STATUS_COMPLETED
    terminal_financial_statuses: tuple[str, ...] = (
        "Balance Paid in Full",
        "Written Off",
        "Cancelled",
    )
    # Statuses under which an uninvoiced project falls back to its contract value.
    fallback_financial_statuses: tuple[str, ...] = (
        "Awaiting Payment",
        "Initial Payment Made",
        "Second Payment Made",
    )
    fallback_when_status_unset: bool = True
    qualifying_invoice_statuses: tuple[str, ...] = (
        "SUBMITTED",
        "AUTHORISED",
        "OVERDUE",
    )
    dashboard_limit: int = 5


# ---------------------------------------------------------------------------
# Archive and tasks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ArchiveRetentionRules:
    """How long soft-deleted jobs and customers stay restorable."""

    retention_days: int = 30
    expiring_soon_days: int = 7


@dataclass(frozen=True)
class TaskVisibilityRules:
    """Canonical task filtering applied before any task list is shown."""

    auto_archive_days: int = 7
    completed_status: str = TASK_STATUS_COMPLETED
    hidden_statuses: tuple[str, ...] = (TASK_STATUS_CANCELLED,)


# ---------------------------------------------------------------------------
# Leads
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LeadViewRules:
    """
    Stage bucketing and follow-up thresholds for the lead console.

    Day counts are whole days since the last customer or internal message.
    Status keywords are compared case-insensitively.
    """

    engaged_window_days: int = 3
    stalled_after_days: int = 7
    archive_after_days: int = 21
    contact_gap_days: int = 2
    lost_project_statuses: tuple[str, ...] = ("lost", "cancelled", "canceled")
    won_project_statuses: tuple[str, ...] = ("won", "completed", "complete", "done", "closed")
    pricing_checklist_items: tuple[str, ...] = ("Pricing Requested", "Pricing Received")
    follow_up_stages: tuple[str, ...] = (
        LeadStage.QUOTE_SENT.value,
        LeadStage.ENGAGED.value,
        LeadStage.STALLED.value,
    )
    follow_up_task_status: str = "Open"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldOpsConfig:
    """
    Root configuration object.

    ``checksum`` is the SHA-256 of the source data the object was parsed
    from; the built-in defaults carry an empty checksum.
    """

    config_id: str = "default"
    version: int = 1
    currency: str = "AUD"
    balances: OutstandingBalanceRules = field(default_factory=OutstandingBalanceRules)
    archive: ArchiveRetentionRules = field(default_factory=ArchiveRetentionRules)
    tasks: TaskVisibilityRules = field(default_factory=TaskVisibilityRules)
    leads: LeadViewRules = field(default_factory=LeadViewRules)
    checksum: str = ""


DEFAULT_CONFIG = FieldOpsConfig()
