"""
Module: fieldops_engines.retention
Responsibility:
    Countdown for soft-deleted jobs and customers: how many days each has
    left before it drops out of the restorable archive, and which ones are
    close to expiry.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  ``as_of`` is always
    passed in; the engine never reads the clock.

Invariants enforced:
    - days_remaining = whole days from ``as_of`` to
      ``deleted_at + retention_days``, truncated toward zero.
    - expiring_soon when days_remaining <= expiring_soon_days (this
      includes already-expired records).
    - Listings are newest deletion first, ties broken by id.

Usage:
    calculator = RetentionCalculator(config.archive)
    listing = calculator.build_listing(jobs=jobs, customers=customers, as_of=now)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Sequence

from fieldops_config.schema import ArchiveRetentionRules
from fieldops_engines.tracer import traced_engine
from fieldops_kernel.domain.records import DeletedRecord
from fieldops_kernel.domain.values import as_utc, whole_days_between
from fieldops_kernel.logging_config import get_logger

logger = get_logger("engines.retention")


@dataclass(frozen=True)
class RetentionStatus:
    """A deleted record with its expiry countdown."""

    record: DeletedRecord
    expires_at: datetime
    days_remaining: int
    expiring_soon: bool

    @property
    def expired(self) -> bool:
        return self.days_remaining < 0


@dataclass(frozen=True)
class ArchiveListing:
    """Jobs and customers in the archive as of a point in time."""

    as_of: datetime
    jobs: tuple[RetentionStatus, ...]
    customers: tuple[RetentionStatus, ...]

    @property
    def all_items(self) -> tuple[RetentionStatus, ...]:
        return self.jobs + self.customers

    @property
    def expiring_soon_count(self) -> int:
        return sum(1 for item in self.all_items if item.expiring_soon)

    def expired(self) -> tuple[RetentionStatus, ...]:
        return tuple(item for item in self.all_items if item.expired)


class RetentionCalculator:
    """Retention countdown over soft-deleted records."""

    def __init__(self, rules: ArchiveRetentionRules | None = None):
        self.rules = rules or ArchiveRetentionRules()

    def expires_at(self, deleted_at: datetime) -> datetime:
        return as_utc(deleted_at) + timedelta(days=self.rules.retention_days)

    def days_remaining(self, deleted_at: datetime, as_of: datetime) -> int:
        return whole_days_between(self.expires_at(deleted_at), as_of)

    def status(self, record: DeletedRecord, as_of: datetime) -> RetentionStatus:
        remaining = self.days_remaining(record.deleted_at, as_of)
        return RetentionStatus(
            record=record,
            expires_at=self.expires_at(record.deleted_at),
            days_remaining=remaining,
            expiring_soon=remaining <= self.rules.expiring_soon_days,
        )

    def _ordered(
        self, records: Sequence[DeletedRecord], as_of: datetime
    ) -> tuple[RetentionStatus, ...]:
        ordered = sorted(records, key=lambda r: r.id)
        ordered.sort(key=lambda r: as_utc(r.deleted_at), reverse=True)
        return tuple(self.status(r, as_of) for r in ordered)

    @traced_engine("archive_retention", "1.0", ("jobs", "customers", "as_of"))
    def build_listing(
        self,
        *,
        jobs: Sequence[DeletedRecord],
        customers: Sequence[DeletedRecord],
        as_of: datetime,
    ) -> ArchiveListing:
        """
        Countdown for every deleted job and customer.

        Args:
            jobs: Soft-deleted jobs.
            customers: Soft-deleted customers.
            as_of: The moment the countdown is measured from.
        """
        listing = ArchiveListing(
            as_of=as_utc(as_of),
            jobs=self._ordered(jobs, as_of),
            customers=self._ordered(customers, as_of),
        )
        logger.debug(
            "archive_listing_built",
            extra={
                "job_count": len(listing.jobs),
                "customer_count": len(listing.customers),
                "expiring_soon_count": listing.expiring_soon_count,
            },
        )
        return listing
