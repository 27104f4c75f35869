"""
Module: weekly_ledger.selectors.base
Responsibility: Base class for read-only query selectors.
Architecture position: Selectors.  May import from db/, models/ and domain/.
    MUST NOT import from services/.

Invariants enforced:
    - Read-only: selectors never add, delete, flush or commit.
    - Selectors return frozen dataclasses or domain states, not ORM rows.
    - The caller owns the session.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from weekly_ledger.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """Read-only query object over a caller-owned session."""

    def __init__(self, session: Session):
        self.session = session
