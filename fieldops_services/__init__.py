"""
fieldops_services -- orchestration of selectors and engines per view.

Each service takes the caller's Session, an optional Clock and an
optional FieldOpsConfig; nothing is read ambiently.
"""

from fieldops_services.archive_service import ArchiveService
from fieldops_services.lead_service import LeadService
from fieldops_services.outstanding_balance_service import (
    OutstandingBalanceService,
    OutstandingBalanceView,
)
from fieldops_services.task_service import TaskService

__all__ = [
    "ArchiveService",
    "LeadService",
    "OutstandingBalanceService",
    "OutstandingBalanceView",
    "TaskService",
]
