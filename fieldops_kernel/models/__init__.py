"""ORM models for the local record mirror."""

from fieldops_kernel.models.leads import EmailThread, Quote
from fieldops_kernel.models.operations import Customer, Job, Task
from fieldops_kernel.models.project import Project, XeroInvoice

__all__ = [
    "Customer",
    "EmailThread",
    "Job",
    "Project",
    "Quote",
    "Task",
    "XeroInvoice",
]
