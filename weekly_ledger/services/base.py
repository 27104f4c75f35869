"""
BaseService -- base for session-bound services.

Responsibility:
    Common constructor for services that work inside a caller-owned
    SQLAlchemy ``Session`` (party maintenance).  They ``flush()`` and never
    ``commit()``; the caller owns the transaction.

Architecture position:
    Services -- imperative shell.  LedgerStore is the exception: it opens
    its own short session per write attempt so it can retry on conflict.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from weekly_ledger.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for session-bound services.

    Contract:
        Accepts a ``Session`` from the caller and persists changes with
        ``session.flush()``.  Never commits or rolls back.
    """

    def __init__(self, session: Session):
        self.session = session
