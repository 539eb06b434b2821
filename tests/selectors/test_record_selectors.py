"""
Tests for the project, invoice, quote, thread, task and archive selectors.

Verifies that ORM rows come back as frozen records with amounts as
Decimal, timestamps as aware UTC and a stable order.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from fieldops_kernel.domain.records import InvoiceRecord, ProjectRecord
from fieldops_kernel.selectors import (
    ArchiveSelector,
    EmailThreadSelector,
    InvoiceSelector,
    ProjectSelector,
    QuoteSelector,
    TaskSelector,
)

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestProjectSelector:
    def test_list_by_status_filters_status_and_deleted(self, session, make_project):
        keep = make_project(id="a1")
        make_project(id="a2", status="In Progress")
        make_project(id="a3", deleted_at=T0)

        records = ProjectSelector(session).list_by_status("Completed")

        assert [r.id for r in records] == [keep.id]
        assert isinstance(records[0], ProjectRecord)
        assert records[0].total_project_value == Decimal("1000.00")

    def test_include_deleted(self, session, make_project):
        make_project(id="a1")
        make_project(id="a2", deleted_at=T0)

        records = ProjectSelector(session).list_by_status("Completed", exclude_deleted=False)

        assert [r.id for r in records] == ["a1", "a2"]
        assert records[1].deleted_at.tzinfo is not None

    def test_blank_financial_status_is_none(self, session, make_project):
        make_project(id="a1", financial_status="")
        make_project(id="a2", financial_status="  ", title="  ")

        records = ProjectSelector(session).list_by_status("Completed")

        assert [r.financial_status for r in records] == [None, None]
        assert records[1].title is None

    def test_list_all_any_status(self, session, make_project):
        make_project(id="a1", status="Quoted", completed_date=None)
        make_project(id="a2")
        make_project(id="a3", deleted_at=T0)

        records = ProjectSelector(session).list_all()

        assert [r.id for r in records] == ["a1", "a2"]

    def test_lead_fields(self, session, make_project):
        make_project(
            id="a1",
            primary_quote_id="q1",
            quote_checklist=[
                {"item": "Pricing Requested", "checked": True},
                {"item": "Site Measured", "checked": False},
            ],
        )

        record = ProjectSelector(session).list_all()[0]

        assert record.primary_quote_id == "q1"
        assert record.checklist == ("pricing requested",)


class TestInvoiceSelector:
    def test_list_all_includes_unlinked(self, session, make_invoice):
        make_invoice("p1", "OVERDUE", "150", id="i2")
        make_invoice(None, "PAID", "0", id="i1")

        records = InvoiceSelector(session).list_all()

        assert [r.id for r in records] == ["i1", "i2"]
        assert isinstance(records[0], InvoiceRecord)
        assert records[1].amount_due == Decimal("150")

    def test_null_amount_due_is_zero(self, session, make_invoice):
        make_invoice("p1", "AUTHORISED", None, id="i1")

        assert InvoiceSelector(session).list_all()[0].amount_due == Decimal("0")


class TestLeadSelectors:
    def test_quotes(self, session, make_quote):
        make_quote("p1", "  Sent ", "900", id="q2")
        make_quote("p1", "Draft", None, id="q1")

        records = QuoteSelector(session).list_all()

        assert [r.id for r in records] == ["q1", "q2"]
        assert records[0].value is None
        assert records[1].status == "sent"
        assert records[1].value == Decimal("900")
        assert records[1].created_at.tzinfo is not None

    def test_threads(self, session, make_thread):
        make_thread("p1", id="t1", is_unread=True, assigned_to=" ", last_customer_message_at=T0)

        record = EmailThreadSelector(session).list_all()[0]

        assert record.is_unread
        assert record.assigned_to is None
        assert record.last_customer_message_at == T0
        assert record.updated_at is not None


class TestTaskSelector:
    def test_timestamps_are_utc(self, session, make_task):
        make_task(id="t1", status="Completed", completed_at=T0)

        record = TaskSelector(session).list_all()[0]

        assert record.is_completed
        assert record.completed_at == T0


class TestArchiveSelector:
    def test_only_deleted_newest_first(self, session, make_job, make_customer):
        make_job(id="j1", deleted_at=T0)
        make_job(id="j2", deleted_at=T0 + timedelta(days=2), job_number="J-2")
        make_job(id="j3")
        make_customer(id="c1", name="Acme", deleted_at=T0)

        selector = ArchiveSelector(session)
        jobs = selector.list_deleted_jobs()
        customers = selector.list_deleted_customers()

        assert [j.id for j in jobs] == ["j2", "j1"]
        assert jobs[0].label == "J-2"
        assert jobs[0].kind == "job"
        assert [c.label for c in customers] == ["Acme"]
