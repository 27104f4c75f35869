"""
Module: weekly_ledger.models.party
Responsibility: ORM persistence for the parties whose payments are bucketed.
    The ledger only reads display metadata (name, code) from here; party
    maintenance belongs to the directory service.
"""

from enum import Enum

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from weekly_ledger.db.base import TrackedBase


class PartyType(str, Enum):
    """Which payment page the party is entered on."""

    DAILY = "daily"
    MULTIDAY = "multiday"


class Party(TrackedBase):
    """A collection party, identified by a unique business code."""

    __tablename__ = "parties"

    __table_args__ = (
        UniqueConstraint("party_code", name="uq_party_code"),
        Index("idx_party_active", "is_active"),
    )

    party_code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    party_type: Mapped[PartyType] = mapped_column(
        String(20),
        nullable=False,
        default=PartyType.DAILY,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    def __repr__(self) -> str:
        return f"<Party {self.party_code}: {self.name}>"
