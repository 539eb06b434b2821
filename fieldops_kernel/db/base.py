"""
Module: fieldops_kernel.db.base
Responsibility: Declarative base classes for the local mirror of backend
    entities.  Provides the string primary key convention, the type
    annotation map for consistent column types, and the TrackedBase mixin
    for sync timestamps.
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel.  ALL model files import from here.  MUST NOT import from models/,
    selectors/, domain/, or outer layers.

Invariants enforced:
    - String primary keys: backend ids are opaque strings, so the mirror
      keeps them verbatim; locally created rows get a uuid4 hex id.
    - Decimal precision: Decimal maps to Numeric(18, 2).  NEVER use float
      for monetary amounts.
    - datetime maps to DateTime(timezone=True).
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import uuid4

from sqlalchemy import Date, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def new_record_id() -> str:
    """Id for rows created locally rather than synced from the backend."""
    return uuid4().hex


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is a string of at most 64 characters.
        - Decimal maps to Numeric(18, 2).
        - datetime maps to DateTime(timezone=True).
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(18, 2),
        datetime: DateTime(timezone=True),
        date: Date(),
        str: String(255),
    }

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=new_record_id,
    )


class TrackedBase(Base):
    """
    Abstract base with sync timestamps.

    Guarantees:
        - created_at is set to server NOW() on INSERT and never changes.
        - updated_at is set to server NOW() on INSERT and auto-updates on
          every UPDATE.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
