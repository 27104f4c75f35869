"""
Module: weekly_ledger.db.base
Responsibility: Declarative base and shared column conventions for the
    ledger schema: portable UUID keys, exact money columns, writer-stamped
    timestamps and the optimistic-locking version column.
Architecture position: bottom of the package.  Models import from here;
    this module imports nothing from weekly_ledger.

Invariants enforced:
    - Ids are uuid4 values kept as 36-character strings, so one schema runs
      on PostgreSQL in production and SQLite in tests.
    - Decimal columns are Numeric(38, 9).  Amounts never pass through float.
    - Versioned tables bump ``version`` on every UPDATE; a writer holding a
      stale version gets StaleDataError instead of overwriting.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID on the Python side, CHAR-like String(36) in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict[Any, Any]] = {
        UUID: UUIDString(),
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Rows that record when they were created and last written, and by whom.

    The store sets both timestamps from its Clock.  The server defaults only
    apply to rows inserted by hand (fixtures, migrations).  ``created_by_id``
    may be empty because bulk submissions often have no interactive actor.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    created_by_id: Mapped[UUID | None] = mapped_column(nullable=True)


class VersionedMixin:
    """Optimistic locking: ``UPDATE ... WHERE id = :id AND version = :seen``."""

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    @declared_attr.directive
    def __mapper_args__(cls) -> dict[str, Any]:
        return {"version_id_col": cls.__table__.c.version}
