"""
Service layer for the party directory.

The ledger stores only party ids; names and codes for reports come from
here.  Returns PartyInfo / PartyRef DTOs instead of ORM entities.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable
from uuid import UUID

from sqlalchemy import select

from weekly_ledger.domain.values import UNKNOWN_PARTY_NAME
from weekly_ledger.exceptions import InvalidInputError, PartyNotFoundError
from weekly_ledger.logging_config import get_logger
from weekly_ledger.models.party import Party, PartyType
from weekly_ledger.services.base import BaseService

logger = get_logger("services.party_directory")


@dataclass(frozen=True)
class PartyRef:
    """Display metadata used by summaries."""

    name: str
    code: str


UNKNOWN_PARTY = PartyRef(name=UNKNOWN_PARTY_NAME, code="")


@dataclass(frozen=True)
class PartyInfo:
    """Immutable DTO for party data."""

    id: UUID
    party_code: str
    name: str
    party_type: PartyType
    is_active: bool

    @property
    def ref(self) -> PartyRef:
        return PartyRef(name=self.name, code=self.party_code)


class PartyDirectory(BaseService[Party]):
    """Create and look up parties."""

    def _to_dto(self, party: Party) -> PartyInfo:
        return PartyInfo(
            id=party.id,
            party_code=party.party_code,
            name=party.name,
            party_type=PartyType(party.party_type),
            is_active=party.is_active,
        )

    def get_by_id(self, party_id: UUID) -> PartyInfo:
        """
        Get party by ID.

        Raises:
            PartyNotFoundError: If party doesn't exist.
        """
        party = self.session.get(Party, party_id)
        if party is None:
            raise PartyNotFoundError(str(party_id))
        return self._to_dto(party)

    def lookup_many(self, party_ids: Iterable[UUID]) -> dict[UUID, PartyRef]:
        """
        Resolve display metadata for many parties in one query.

        Ids with no party row map to ``UNKNOWN_PARTY`` rather than failing;
        buckets may outlive the party that created them.
        """
        wanted = set(party_ids)
        if not wanted:
            return {}
        rows = self.session.execute(select(Party).where(Party.id.in_(wanted))).scalars().all()
        found = {row.id: PartyRef(name=row.name, code=row.party_code) for row in rows}
        return {pid: found.get(pid, UNKNOWN_PARTY) for pid in wanted}

    def create_party(
        self,
        party_code: str,
        name: str,
        party_type: PartyType = PartyType.DAILY,
        actor_id: UUID | None = None,
    ) -> PartyInfo:
        """
        Create a new party.

        Args:
            party_code: Unique business code (e.g., "P1").
            name: Display name.
            party_type: Which payment page the party belongs to.
            actor_id: Who is creating the party.

        Raises:
            InvalidInputError: Code or name blank, or code already taken.
        """
        party_code = (party_code or "").strip()
        name = (name or "").strip()
        if not party_code:
            raise InvalidInputError("party_code is required", field="party_code")
        if not name:
            raise InvalidInputError("name is required", field="name")

        existing = self.session.execute(
            select(Party).where(Party.party_code == party_code)
        ).scalar_one_or_none()
        if existing is not None:
            raise InvalidInputError(
                f"Party code already exists: {party_code}",
                field="party_code",
                value=party_code,
            )

        party = Party(
            party_code=party_code,
            name=name,
            party_type=PartyType(party_type).value,
            is_active=True,
            created_by_id=actor_id,
        )
        self.session.add(party)
        self.session.flush()

        logger.info(
            "party_created",
            extra={"party_id": str(party.id), "party_code": party_code},
        )
        return self._to_dto(party)
