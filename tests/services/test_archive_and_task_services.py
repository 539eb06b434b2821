"""
Tests for ArchiveService and TaskService against the record mirror.

Covers:
- Archive listing countdown from the injected clock
- Restore and purge, including typed failures
- Task listing through the visibility filter
- Auto-archive stamping and best-effort handling of vanished or failing rows
"""

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from fieldops_engines.task_visibility import TaskViewer
from fieldops_kernel.domain.records import TaskRecord
from fieldops_kernel.domain.values import as_utc
from fieldops_kernel.exceptions import (
    ArchivedRecordNotFoundError,
    UnsupportedArchiveKindError,
)
from fieldops_kernel.models import Customer, Job, Task
from fieldops_kernel.selectors.operations_selector import TaskSelector
from fieldops_services import ArchiveService, TaskService


class TestArchiveService:
    def test_listing_uses_clock(self, session, clock, make_job, make_customer):
        make_job(id="j1", deleted_at=clock.now_utc() - timedelta(days=25))
        make_customer(id="c1", deleted_at=clock.now_utc() - timedelta(days=1))

        listing = ArchiveService(session, clock).listing()

        assert listing.jobs[0].days_remaining == 5
        assert listing.jobs[0].expiring_soon
        assert listing.customers[0].days_remaining == 29
        assert listing.expiring_soon_count == 1

    def test_listing_moves_with_clock(self, session, clock, make_job):
        make_job(id="j1", deleted_at=clock.now_utc())
        service = ArchiveService(session, clock)

        clock.advance_days(31)

        assert service.listing().jobs[0].expired

    def test_restore_clears_deleted_at(self, session, clock, make_job):
        make_job(id="j1", deleted_at=clock.now_utc())

        ArchiveService(session, clock).restore("job", "j1")

        assert session.get(Job, "j1").deleted_at is None
        assert ArchiveService(session, clock).listing().jobs == ()

    def test_purge_deletes_row(self, session, clock, make_customer):
        make_customer(id="c1", deleted_at=clock.now_utc())

        ArchiveService(session, clock).purge("customer", "c1")

        assert session.get(Customer, "c1") is None

    def test_restore_live_record_rejected(self, session, clock, make_job):
        make_job(id="j1")

        with pytest.raises(ArchivedRecordNotFoundError) as exc_info:
            ArchiveService(session, clock).restore("job", "j1")

        assert exc_info.value.record_id == "j1"

    def test_purge_unknown_id_rejected(self, session, clock):
        with pytest.raises(ArchivedRecordNotFoundError):
            ArchiveService(session, clock).purge("customer", "missing")

    def test_unsupported_kind(self, session, clock):
        with pytest.raises(UnsupportedArchiveKindError):
            ArchiveService(session, clock).restore("project", "p1")

    def test_restore_logged(self, session, clock, make_job, captured_logs):
        make_job(id="j1", deleted_at=clock.now_utc())

        ArchiveService(session, clock).restore("job", "j1")

        restored = [r for r in captured_logs() if r["message"] == "archive_record_restored"]
        assert restored[0]["kind"] == "job"
        assert restored[0]["record_id"] == "j1"


class TestTaskService:
    def test_visible_tasks(self, session, clock, make_task):
        now = clock.now_utc()
        make_task(id="t1", assigned_to_user_id="u1")
        make_task(id="t2", status="Cancelled")
        make_task(id="t3", status="Completed", completed_at=now - timedelta(days=2))
        make_task(id="t4", status="Completed", completed_at=now - timedelta(days=9))
        make_task(id="t5", archived_at=now - timedelta(days=1))

        visible = TaskService(session, clock).visible_tasks()

        assert [t.id for t in visible] == ["t1", "t3"]

    def test_technician_view(self, session, clock, make_task):
        make_task(id="t1", assigned_to_user_id="u1")
        make_task(id="t2", assigned_to_user_id="u2")

        visible = TaskService(session, clock).visible_tasks(
            TaskViewer(user_id="u2", technician_only=True)
        )

        assert [t.id for t in visible] == ["t2"]

    def test_auto_archive_stamps_clock_time(self, session, clock, make_task):
        now = clock.now_utc()
        make_task(id="old", status="Completed", completed_at=now - timedelta(days=10))
        make_task(id="new", status="Completed", completed_at=now - timedelta(days=1))

        archived = TaskService(session, clock).auto_archive()

        assert archived == ["old"]
        assert as_utc(session.get(Task, "old").archived_at) == now
        assert session.get(Task, "new").archived_at is None

    def test_auto_archive_nothing_due(self, session, clock, make_task):
        make_task(id="t1")

        assert TaskService(session, clock).auto_archive() == []

    def test_auto_archive_skips_vanished_task(
        self, session, clock, make_task, monkeypatch, captured_logs
    ):
        now = clock.now_utc()
        make_task(id="real", status="Completed", completed_at=now - timedelta(days=10))
        real_list_all = TaskSelector.list_all

        def with_phantom(self):
            phantom = TaskRecord(
                id="gone", status="Completed", completed_at=now - timedelta(days=10)
            )
            return real_list_all(self) + [phantom]

        monkeypatch.setattr(TaskSelector, "list_all", with_phantom)

        archived = TaskService(session, clock).auto_archive()

        assert archived == ["real"]
        missing = [r for r in captured_logs() if r["message"] == "auto_archive_task_missing"]
        assert missing[0]["task_id"] == "gone"

    def test_auto_archive_continues_after_failed_task(
        self, session, clock, make_task, monkeypatch, captured_logs
    ):
        now = clock.now_utc()
        make_task(id="a", status="Completed", completed_at=now - timedelta(days=10))
        make_task(id="b", status="Completed", completed_at=now - timedelta(days=10))
        real_get = session.get

        def failing_get(entity, ident, **kwargs):
            if ident == "a":
                raise OperationalError("SELECT", {}, Exception("database is locked"))
            return real_get(entity, ident, **kwargs)

        monkeypatch.setattr(session, "get", failing_get)

        archived = TaskService(session, clock).auto_archive()

        assert archived == ["b"]
        monkeypatch.undo()
        assert as_utc(session.get(Task, "b").archived_at) == now
        assert session.get(Task, "a").archived_at is None
        failed = [r for r in captured_logs() if r["message"] == "auto_archive_task_failed"]
        assert [r["task_id"] for r in failed] == ["a"]
