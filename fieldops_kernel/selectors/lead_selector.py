"""
Module: fieldops_kernel.selectors.lead_selector
Responsibility: Read quotes and email threads as frozen records for the
    lead console.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Both listings are unfiltered and ordered by id; grouping by project
      happens in the engine, once per snapshot.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from fieldops_kernel.domain.records import EmailThreadRecord, QuoteRecord
from fieldops_kernel.domain.values import as_utc, blank_to_none, to_amount
from fieldops_kernel.logging_config import get_logger
from fieldops_kernel.models.leads import EmailThread, Quote
from fieldops_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.lead")


class QuoteSelector(BaseSelector[Quote]):
    """Selector for quotes."""

    def __init__(self, session: Session):
        super().__init__(session)

    def _to_record(self, quote: Quote) -> QuoteRecord:
        return QuoteRecord(
            id=quote.id,
            project_id=blank_to_none(quote.project_id),
            status=blank_to_none(quote.status),
            value=None if quote.value is None else to_amount(quote.value),
            created_at=as_utc(quote.created_at),
        )

    def list_all(self) -> list[QuoteRecord]:
        stmt = select(Quote).order_by(Quote.id)
        records = [self._to_record(q) for q in self.session.scalars(stmt)]
        logger.debug("quotes_fetched", extra={"count": len(records)})
        return records


class EmailThreadSelector(BaseSelector[EmailThread]):
    """Selector for email threads."""

    def __init__(self, session: Session):
        super().__init__(session)

    def _to_record(self, thread: EmailThread) -> EmailThreadRecord:
        return EmailThreadRecord(
            id=thread.id,
            project_id=blank_to_none(thread.project_id),
            is_unread=bool(thread.is_unread),
            assigned_to=blank_to_none(thread.assigned_to),
            last_message_at=as_utc(thread.last_message_at),
            last_customer_message_at=as_utc(thread.last_customer_message_at),
            last_internal_message_at=as_utc(thread.last_internal_message_at),
            updated_at=as_utc(thread.updated_at),
        )

    def list_all(self) -> list[EmailThreadRecord]:
        stmt = select(EmailThread).order_by(EmailThread.id)
        records = [self._to_record(t) for t in self.session.scalars(stmt)]
        logger.debug("email_threads_fetched", extra={"count": len(records)})
        return records
