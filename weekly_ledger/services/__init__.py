"""Services for the weekly ledger (write side and wiring)."""

from weekly_ledger.services.annotation_service import AnnotationService
from weekly_ledger.services.ledger_gateway import LedgerGateway
from weekly_ledger.services.ledger_store import BucketStore, LedgerStore
from weekly_ledger.services.merge_upsert_service import MergeUpsertService
from weekly_ledger.services.party_directory import PartyDirectory, PartyInfo, PartyRef

__all__ = [
    "AnnotationService",
    "BucketStore",
    "LedgerGateway",
    "LedgerStore",
    "MergeUpsertService",
    "PartyDirectory",
    "PartyInfo",
    "PartyRef",
]
