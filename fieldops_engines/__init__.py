"""
Module: fieldops_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    derived-view engines.  This is the canonical import surface for
    fieldops_services and scripts.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import fieldops_kernel.domain, fieldops_kernel.logging_config
    and fieldops_config.schema.  MUST NOT import fieldops_services.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()``; ``as_of`` is passed in.
    - Decimal-only arithmetic for monetary amounts.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every engine invocation is traced via ``@traced_engine`` (see
    ``fieldops_engines.tracer``), emitting FIELDOPS_ENGINE_TRACE records.
"""

from fieldops_engines.lead_views import (
    CommsRollup,
    LeadBoard,
    LeadView,
    LeadViewCalculator,
    NextAction,
    NextStep,
    StageDecision,
    TouchDirection,
)
from fieldops_engines.outstanding import (
    BalanceSource,
    OutstandingBalanceReport,
    OutstandingBalanceResolver,
    ProjectBalance,
)
from fieldops_engines.retention import (
    ArchiveListing,
    RetentionCalculator,
    RetentionStatus,
)
from fieldops_engines.task_visibility import (
    HiddenReason,
    TaskViewer,
    TaskVisibilityEngine,
)
from fieldops_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "ArchiveListing",
    "BalanceSource",
    "CommsRollup",
    "HiddenReason",
    "LeadBoard",
    "LeadView",
    "LeadViewCalculator",
    "NextAction",
    "NextStep",
    "OutstandingBalanceReport",
    "OutstandingBalanceResolver",
    "ProjectBalance",
    "RetentionCalculator",
    "RetentionStatus",
    "StageDecision",
    "TaskViewer",
    "TaskVisibilityEngine",
    "TouchDirection",
    "compute_input_fingerprint",
    "traced_engine",
]
