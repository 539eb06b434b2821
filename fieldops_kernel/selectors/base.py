"""
Module: fieldops_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
    Selectors are the fetch side of every derived view: they read a
    snapshot of mirrored backend records and hand back frozen records.
Architecture position: Kernel > Selectors.  May import from db/, models/
    and domain/records.  MUST NOT import from engines or services.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller but MUST
      NOT call session.add(), session.delete(), session.commit(), or
      session.flush().
    - Record return convention: selectors return frozen record dataclasses,
      NOT ORM model instances.
    - Session ownership: the caller owns the session and its transaction.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from fieldops_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries,
        and return records.  They MUST NOT mutate any data.
    """

    def __init__(self, session: Session):
        self.session = session
