"""
fieldops_services.archive_service -- soft-deleted jobs and customers.

Responsibility:
    List the archive with its retention countdown, restore a record
    (clear ``deleted_at``), or purge it permanently.

Architecture position:
    Services -- orchestration over RetentionCalculator + kernel selectors.
    Writes go through the caller's session; the caller commits
    (``session_scope``).

Failure modes:
    - UnsupportedArchiveKindError for a kind other than job/customer.
    - ArchivedRecordNotFoundError when the id does not exist or the
      record is not soft-deleted.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from fieldops_config.schema import DEFAULT_CONFIG, FieldOpsConfig
from fieldops_engines.retention import ArchiveListing, RetentionCalculator
from fieldops_kernel.domain.clock import Clock, SystemClock
from fieldops_kernel.exceptions import (
    ArchivedRecordNotFoundError,
    UnsupportedArchiveKindError,
)
from fieldops_kernel.logging_config import get_logger
from fieldops_kernel.models.operations import Customer, Job
from fieldops_kernel.selectors.operations_selector import ArchiveSelector

logger = get_logger("services.archive")

_ARCHIVE_MODELS = {
    "job": Job,
    "customer": Customer,
}


class ArchiveService:
    """Archive listing, restore and purge."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: FieldOpsConfig | None = None,
    ):
        self.session = session
        self.clock = clock or SystemClock()
        self.config = config or DEFAULT_CONFIG
        self._selector = ArchiveSelector(session)
        self._calculator = RetentionCalculator(self.config.archive)

    def listing(self) -> ArchiveListing:
        return self._calculator.build_listing(
            jobs=self._selector.list_deleted_jobs(),
            customers=self._selector.list_deleted_customers(),
            as_of=self.clock.now_utc(),
        )

    def _get_archived(self, kind: str, record_id: str) -> Job | Customer:
        model = _ARCHIVE_MODELS.get(kind)
        if model is None:
            raise UnsupportedArchiveKindError(kind)
        row = self.session.get(model, record_id)
        if row is None or row.deleted_at is None:
            raise ArchivedRecordNotFoundError(kind, record_id)
        return row

    def restore(self, kind: str, record_id: str) -> None:
        """Bring a soft-deleted record back."""
        row = self._get_archived(kind, record_id)
        row.deleted_at = None
        self.session.flush()
        logger.info("archive_record_restored", extra={"kind": kind, "record_id": record_id})

    def purge(self, kind: str, record_id: str) -> None:
        """Permanently delete a soft-deleted record."""
        row = self._get_archived(kind, record_id)
        self.session.delete(row)
        self.session.flush()
        logger.info("archive_record_purged", extra={"kind": kind, "record_id": record_id})
