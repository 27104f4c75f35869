"""
Tests for PartyDirectory.
"""

from uuid import uuid4

import pytest

from weekly_ledger.exceptions import InvalidInputError, PartyNotFoundError
from weekly_ledger.models.party import PartyType
from weekly_ledger.services.party_directory import (
    UNKNOWN_PARTY,
    PartyDirectory,
    PartyRef,
)


class TestCreateParty:
    def test_create(self, session, test_actor_id):
        info = PartyDirectory(session).create_party("P9", "  Gamma Stores ", PartyType.MULTIDAY, test_actor_id)

        assert info.party_code == "P9"
        assert info.name == "Gamma Stores"
        assert info.party_type == PartyType.MULTIDAY
        assert info.is_active is True
        assert info.ref == PartyRef(name="Gamma Stores", code="P9")

    def test_duplicate_code_rejected(self, create_party, session):
        create_party("P1", "Alpha Traders")
        with pytest.raises(InvalidInputError) as exc_info:
            PartyDirectory(session).create_party("P1", "Another")
        assert exc_info.value.field == "party_code"

    @pytest.mark.parametrize("code,name,field", [("", "Name", "party_code"), ("P2", "   ", "name")])
    def test_blank_fields_rejected(self, session, code, name, field):
        with pytest.raises(InvalidInputError) as exc_info:
            PartyDirectory(session).create_party(code, name)
        assert exc_info.value.field == field

    def test_logs_creation(self, session, captured_logs):
        PartyDirectory(session).create_party("P3", "Delta")
        record = next(r for r in captured_logs() if r["message"] == "party_created")
        assert record["party_code"] == "P3"


class TestLookup:
    def test_get_by_id(self, party_id, session):
        info = PartyDirectory(session).get_by_id(party_id)
        assert info.id == party_id
        assert info.name == "Alpha Traders"

    def test_get_missing(self, session):
        with pytest.raises(PartyNotFoundError):
            PartyDirectory(session).get_by_id(uuid4())

    def test_lookup_many_marks_unknown(self, create_party, session):
        alpha = create_party("P1", "Alpha Traders")
        beta = create_party("P2", "Beta Co")
        ghost = uuid4()

        refs = PartyDirectory(session).lookup_many([alpha.id, beta.id, ghost])

        assert refs[alpha.id] == PartyRef("Alpha Traders", "P1")
        assert refs[beta.id] == PartyRef("Beta Co", "P2")
        assert refs[ghost] == UNKNOWN_PARTY
        assert UNKNOWN_PARTY.name == "Unknown Party"

    def test_lookup_many_empty(self, session):
        assert PartyDirectory(session).lookup_many([]) == {}
