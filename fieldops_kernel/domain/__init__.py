"""
Pure domain layer.

Record dataclasses, value coercion and time helpers with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Wall-clock time
- I/O

All domain objects are immutable and deterministic.
"""

from fieldops_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from fieldops_kernel.domain.records import (
    PROJECT_STATUS_COMPLETED,
    TASK_STATUS_CANCELLED,
    TASK_STATUS_COMPLETED,
    DeletedRecord,
    InvoiceRecord,
    ProjectRecord,
    TaskRecord,
)
from fieldops_kernel.domain.values import (
    ZERO,
    as_utc,
    parse_date,
    parse_datetime,
    quantize_amount,
    to_amount,
    whole_days_between,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "PROJECT_STATUS_COMPLETED",
    "TASK_STATUS_CANCELLED",
    "TASK_STATUS_COMPLETED",
    "DeletedRecord",
    "InvoiceRecord",
    "ProjectRecord",
    "TaskRecord",
    "ZERO",
    "as_utc",
    "parse_date",
    "parse_datetime",
    "quantize_amount",
    "to_amount",
    "whole_days_between",
]
