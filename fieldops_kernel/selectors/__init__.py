"""Read-only selectors for the local record mirror."""

from fieldops_kernel.selectors.base import BaseSelector
from fieldops_kernel.selectors.lead_selector import EmailThreadSelector, QuoteSelector
from fieldops_kernel.selectors.operations_selector import ArchiveSelector, TaskSelector
from fieldops_kernel.selectors.project_selector import InvoiceSelector, ProjectSelector

__all__ = [
    "ArchiveSelector",
    "BaseSelector",
    "EmailThreadSelector",
    "InvoiceSelector",
    "ProjectSelector",
    "QuoteSelector",
    "TaskSelector",
]
