"""
Pytest fixtures for the fieldops test suite.

Provides:
- A database session against the local record mirror (in-memory SQLite
  unless DATABASE_URL is set)
- Factories that insert mirror rows
- A deterministic clock and captured structured logs

Environment Variables:
- DATABASE_URL: SQLAlchemy URL of a scratch database.  Defaults to
  ``sqlite://``.  Every table is emptied after each test.
"""

import json
import logging
import os
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from fieldops_config.schema import DEFAULT_CONFIG
from fieldops_kernel.db.base import Base
from fieldops_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from fieldops_kernel.domain.clock import DeterministicClock
from fieldops_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from fieldops_kernel.models import (
    Customer,
    EmailThread,
    Job,
    Project,
    Quote,
    Task,
    XeroInvoice,
)

DEFAULT_DATABASE_URL = "sqlite://"

# Wednesday morning, mid-March
FIXED_NOW = datetime(2026, 3, 18, 9, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture fieldops logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            ...
            logs = captured_logs()
            assert any(r["message"] == "outstanding_balances_loaded" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("fieldops")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


def get_database_url() -> str:
    """Get database URL from environment, or use in-memory SQLite."""
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


@pytest.fixture(scope="session")
def db_engine():
    """Create the engine and tables once per test session."""
    engine = init_engine_from_url(get_database_url())
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    """A session per test; every table is emptied afterwards."""
    sess = get_session()
    yield sess
    sess.rollback()
    sess.close()
    with db_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(FIXED_NOW)


@pytest.fixture
def config():
    return DEFAULT_CONFIG


# =============================================================================
# Row factories
# =============================================================================


@pytest.fixture
def make_project(session):
    """Insert a Project row.  Defaults to a completed, unpaid project."""

    def _make(**overrides) -> Project:
        values = {
            "id": uuid4().hex,
            "project_number": "P-1001",
            "title": "Roller door replacement",
            "customer_name": "Harbourside Storage",
            "status": "Completed",
            "financial_status": None,
            "total_project_value": Decimal("1000.00"),
            "completed_date": date(2026, 2, 20),
            "deleted_at": None,
        }
        values.update(overrides)
        project = Project(**values)
        session.add(project)
        session.flush()
        return project

    return _make


@pytest.fixture
def make_invoice(session):
    """Insert a XeroInvoice row."""

    def _make(project_id: str | None, status: str = "AUTHORISED", amount_due="0", **overrides) -> XeroInvoice:
        values = {
            "id": uuid4().hex,
            "project_id": project_id,
            "invoice_number": "INV-0001",
            "status": status,
            "amount_due": Decimal(str(amount_due)) if amount_due is not None else None,
        }
        values.update(overrides)
        invoice = XeroInvoice(**values)
        session.add(invoice)
        session.flush()
        return invoice

    return _make


@pytest.fixture
def make_task(session):
    """Insert a Task row."""

    def _make(**overrides) -> Task:
        values = {
            "id": uuid4().hex,
            "title": "Order replacement springs",
            "status": "Open",
            "completed_at": None,
            "archived_at": None,
            "assigned_to_user_id": None,
            "project_id": None,
            "due_date": None,
        }
        values.update(overrides)
        task = Task(**values)
        session.add(task)
        session.flush()
        return task

    return _make


@pytest.fixture
def make_job(session):
    """Insert a Job row."""

    def _make(**overrides) -> Job:
        values = {
            "id": uuid4().hex,
            "job_number": "J-5001",
            "customer_name": "Harbourside Storage",
            "deleted_at": None,
        }
        values.update(overrides)
        job = Job(**values)
        session.add(job)
        session.flush()
        return job

    return _make


@pytest.fixture
def make_customer(session):
    """Insert a Customer row."""

    def _make(**overrides) -> Customer:
        values = {
            "id": uuid4().hex,
            "name": "Harbourside Storage",
            "deleted_at": None,
        }
        values.update(overrides)
        customer = Customer(**values)
        session.add(customer)
        session.flush()
        return customer

    return _make


@pytest.fixture
def make_quote(session):
    """Insert a Quote row.  Defaults to a sent quote."""

    def _make(project_id: str | None, status: str = "Sent", value="2500", **overrides) -> Quote:
        values = {
            "id": uuid4().hex,
            "project_id": project_id,
            "status": status,
            "value": Decimal(str(value)) if value is not None else None,
        }
        values.update(overrides)
        quote = Quote(**values)
        session.add(quote)
        session.flush()
        return quote

    return _make


@pytest.fixture
def make_thread(session):
    """Insert an EmailThread row."""

    def _make(project_id: str | None, **overrides) -> EmailThread:
        values = {
            "id": uuid4().hex,
            "project_id": project_id,
            "subject": "Quote for roller door",
            "is_unread": False,
            "assigned_to": None,
            "last_message_at": None,
            "last_customer_message_at": None,
            "last_internal_message_at": None,
        }
        values.update(overrides)
        thread = EmailThread(**values)
        session.add(thread)
        session.flush()
        return thread

    return _make
