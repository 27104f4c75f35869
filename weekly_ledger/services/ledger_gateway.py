"""
LedgerGateway -- dict-in / dict-out boundary of the weekly ledger.

Responsibility:
    Translates the payloads the payment pages send (camelCase keys, ISO
    date strings, amounts as numbers or strings) into typed requests, calls
    the services, and renders results back into JSON-safe dicts with money
    as strings.

Architecture position:
    Outermost layer.  Owns the wiring: one LedgerStore shared by
    MergeUpsertService, AnnotationService and RangeSummaryAggregator, and
    short read sessions for the party directory and selectors.

Failure modes:
    - InvalidInputError for malformed payloads, raised before the store is
      touched.  Everything else propagates from the services.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from weekly_ledger.config import LedgerSettings
from weekly_ledger.db.engine import get_session_factory, init_engine_from_url
from weekly_ledger.domain.buckets import BucketState, DayBucketState
from weekly_ledger.domain.clock import Clock, SystemClock
from weekly_ledger.domain.dtos import (
    AnnotationRequest,
    MergeUpsertRequest,
    PaymentSubmission,
)
from weekly_ledger.domain.money import money_to_str
from weekly_ledger.domain.parsing import (
    parse_date,
    parse_date_pair,
    parse_date_range,
    parse_optional_date,
    parse_window,
)
from weekly_ledger.domain.values import (
    MEASURES,
    Annotation,
    BucketShape,
    FinancialFields,
    WeeklyNetPayable,
    coerce_amount,
)
from weekly_ledger.exceptions import InvalidInputError
from weekly_ledger.logging_config import configure_logging, get_logger
from weekly_ledger.selectors.bucket_selector import BucketSelector
from weekly_ledger.selectors.expense_selector import ExpenseSelector
from weekly_ledger.selectors.range_summary import RangeSummary, RangeSummaryAggregator
from weekly_ledger.services.annotation_service import AnnotationService
from weekly_ledger.services.ledger_store import LedgerStore
from weekly_ledger.services.merge_upsert_service import MergeUpsertService
from weekly_ledger.services.party_directory import PartyDirectory

logger = get_logger("services.gateway")

# Wire name -> measure name.
WIRE_MEASURES: dict[str, str] = {
    "paymentAmount": "payment_amount",
    "pwt": "pwt",
    "cash": "cash",
    "bank": "bank",
    "due": "due",
    "tda": "tda",
}
_MEASURE_WIRE = {measure: wire for wire, measure in WIRE_MEASURES.items()}


def _first(data: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if data.get(name) not in (None, ""):
            return data[name]
    return None


def _parse_uuid(value: Any, field: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{field} is not a valid id: {value!r}", field=field, value=value) from exc


def _parse_int(value: Any, field: str) -> int | None:
    if value in (None, ""):
        return None
    if isinstance(value, bool):
        raise InvalidInputError(f"{field} must be an integer", field=field, value=value)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{field} must be an integer", field=field, value=value) from exc


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


def _parse_net_payable(row: Mapping[str, Any]) -> WeeklyNetPayable | None:
    raw = _first(row, "weeklyNP", "weeklyNetPayable")
    if raw is None:
        return None
    if isinstance(raw, Mapping):
        return WeeklyNetPayable(
            name=str(raw.get("name") or ""),
            amount=coerce_amount("weeklyNP", raw.get("amount")),
        )
    return WeeklyNetPayable(
        name=str(row.get("weeklyNPName") or ""),
        amount=coerce_amount("weeklyNP", raw),
    )


def parse_submission(row: Mapping[str, Any]) -> PaymentSubmission:
    """One row of the bulk payload; an unordered range is kept for the service to drop."""
    raw_party = _first(row, "partyId", "party")
    party_id = _parse_uuid(raw_party, "partyId") if raw_party is not None else None

    start = end = None
    raw_range = row.get("paymentRange")
    if raw_range not in (None, ""):
        start, end = parse_date_pair(raw_range, "paymentRange")
    else:
        start = parse_optional_date(row.get("startDate"), "startDate")
        end = parse_optional_date(row.get("endDate"), "endDate")

    measures = {
        measure: coerce_amount(wire, row[wire])
        for wire, measure in WIRE_MEASURES.items()
        if row.get(wire) is not None
    }
    raw_shape = _first(row, "shape", "paymentType")

    return PaymentSubmission(
        party_id=party_id,
        entry_date=parse_optional_date(_first(row, "paymentDate", "date"), "paymentDate"),
        start_date=start,
        end_date=end,
        measures=measures,
        weekly_net_payable=_parse_net_payable(row),
        shape=BucketShape.parse(raw_shape) if raw_shape is not None else None,
    )


def parse_merge_request(payload: Mapping[str, Any]) -> MergeUpsertRequest:
    raw_start, raw_end = payload.get("weekStartDate"), payload.get("weekEndDate")
    if raw_start in (None, "") or raw_end in (None, ""):
        raise InvalidInputError(
            "weekStartDate and weekEndDate are required", field="weekStartDate"
        )
    rows = _first(payload, "payments", "submissions") or []
    if not isinstance(rows, (list, tuple)):
        raise InvalidInputError("payments must be a list", field="payments")
    raw_shape = _first(payload, "shape", "paymentType")
    raw_actor = payload.get("actorId")
    return MergeUpsertRequest(
        week_start_date=parse_date(raw_start, "weekStartDate"),
        week_end_date=parse_date(raw_end, "weekEndDate"),
        submissions=[parse_submission(row) for row in rows],
        week_number=_parse_int(payload.get("weekNumber"), "weekNumber"),
        week_year=_parse_int(payload.get("weekYear"), "weekYear"),
        default_shape=BucketShape.parse(raw_shape) if raw_shape is not None else BucketShape.DAY,
        actor_id=_parse_uuid(raw_actor, "actorId") if raw_actor else None,
    )


def parse_annotation_request(payload: Mapping[str, Any]) -> AnnotationRequest:
    raw_party = payload.get("partyId")
    if raw_party in (None, ""):
        raise InvalidInputError("partyId is required", field="partyId")
    if payload.get("color") in (None, ""):
        raise InvalidInputError("color is required", field="color")

    is_party_total = _parse_bool(payload.get("isPartyTotal", False))
    shape = BucketShape.parse(_first(payload, "shape", "paymentType") or BucketShape.DAY)

    target_date = target_range = None
    if not is_party_total:
        if shape == BucketShape.RANGE:
            raw = _first(payload, "targetRange", "paymentRange", "paymentDate")
            if raw is None:
                raise InvalidInputError("targetRange is required", field="targetRange")
            target_range = parse_date_range(raw, "targetRange")
        else:
            raw = _first(payload, "targetDate", "paymentDate")
            if raw is None:
                raise InvalidInputError("targetDate is required", field="targetDate")
            target_date = parse_date(raw, "targetDate")

    return AnnotationRequest(
        party_id=_parse_uuid(raw_party, "partyId"),
        color=Annotation.parse(payload["color"]),
        shape=shape,
        is_party_total=is_party_total,
        target_date=target_date,
        target_range=target_range,
    )


# ----------------------------------------------------------------------
# Rendering
# ----------------------------------------------------------------------


def fields_to_wire(fields: FinancialFields) -> dict[str, str]:
    return {_MEASURE_WIRE[name]: money_to_str(getattr(fields, name)) for name in MEASURES}


def _net_payable_to_wire(value: WeeklyNetPayable) -> dict[str, str]:
    return {"name": value.name, "amount": money_to_str(value.amount)}


def bucket_to_wire(state: BucketState) -> dict[str, Any]:
    body: dict[str, Any] = {
        "shape": state.shape.value,
        "partyId": str(state.key.party_id),
        "weekNumber": state.key.week_number,
        "weekYear": state.key.week_year,
        "weekStartDate": state.week_start_date.isoformat(),
        "weekEndDate": state.week_end_date.isoformat(),
        "weeklyNetPayable": _net_payable_to_wire(state.weekly_net_payable),
        "partyTotalAnnotation": state.party_total_annotation.value,
        "isApproved": state.is_approved,
    }
    if isinstance(state, DayBucketState):
        body["days"] = [
            {
                "date": entry.entry_date.isoformat(),
                **fields_to_wire(entry.fields),
                "annotation": entry.annotation.value,
            }
            for entry in state.sorted_days()
        ]
    else:
        body["ranges"] = [
            {
                "startDate": entry.start_date.isoformat(),
                "endDate": entry.end_date.isoformat(),
                **fields_to_wire(entry.fields),
                "annotation": entry.annotation.value,
            }
            for entry in state.ranges
        ]
    return body


def summary_to_wire(summary: RangeSummary) -> dict[str, Any]:
    parties = []
    for party in summary.parties:
        items = []
        for item in party.line_items:
            row: dict[str, Any] = {"type": item.shape.value}
            if item.shape == BucketShape.DAY:
                row["date"] = item.entry_date.isoformat()
            else:
                row["startDate"] = item.start_date.isoformat()
                row["endDate"] = item.end_date.isoformat()
            row.update(fields_to_wire(item.fields))
            row["annotation"] = item.annotation.value
            items.append(row)
        parties.append(
            {
                "partyId": str(party.party_id),
                "partyName": party.name,
                "partyCode": party.code,
                "lineItems": items,
                "weeklyNetPayable": (
                    _net_payable_to_wire(party.weekly_net_payable)
                    if party.weekly_net_payable is not None
                    else {"name": "", "amount": "0"}
                ),
                "partyTotalAnnotation": (
                    party.party_total_annotation.value
                    if party.party_total_annotation is not None
                    else None
                ),
                "subtotal": fields_to_wire(party.subtotal),
            }
        )
    return {
        "startDate": summary.start_date.isoformat(),
        "endDate": summary.end_date.isoformat(),
        "parties": parties,
        "grandTotal": fields_to_wire(summary.grand_total),
    }


class _SessionPartyLookup:
    """Party lookup that opens a short read session per call."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def lookup_many(self, party_ids):
        with self._session_factory() as session:
            return PartyDirectory(session).lookup_many(party_ids)


class LedgerGateway:
    """
    Wires the ledger services over one session factory.

    Usage:
        gateway = LedgerGateway.from_settings(load_settings("config/weekly_ledger.yaml"))
        gateway.merge_upsert({...})
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        max_write_attempts: int = 5,
    ):
        self._session_factory = session_factory
        self.store = LedgerStore(session_factory, clock or SystemClock(), max_write_attempts)
        self.merge_service = MergeUpsertService(self.store)
        self.annotation_service = AnnotationService(self.store)
        self.aggregator = RangeSummaryAggregator(self.store, _SessionPartyLookup(session_factory))

    @classmethod
    def from_settings(cls, settings: LedgerSettings, clock: Clock | None = None) -> LedgerGateway:
        configure_logging(level=settings.log_level)
        init_engine_from_url(
            settings.database_url,
            echo=settings.echo_sql,
            pool_size=settings.pool_size,
        )
        logger.info("gateway_ready", extra={"max_write_attempts": settings.max_write_attempts})
        return cls(get_session_factory(), clock, settings.max_write_attempts)

    def merge_upsert(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        saved = self.merge_service.merge(parse_merge_request(payload))
        return {"buckets": [bucket_to_wire(state) for state in saved]}

    def set_annotation(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        result = self.annotation_service.set_annotation(parse_annotation_request(payload))
        return {
            "savedColor": result.saved_color.value,
            "shape": result.shape.value,
            "weekNumber": result.week_number,
            "weekYear": result.week_year,
            "target": result.target,
            "changed": result.changed,
        }

    def range_summary(self, start: Any, end: Any) -> dict[str, Any]:
        start_date, end_date = parse_window(start, end)
        return summary_to_wire(self.aggregator.summarize(start_date, end_date))

    def list_buckets(self, params: Mapping[str, Any]) -> dict[str, Any]:
        """Weekly page listing; every filter is optional."""
        raw_party = params.get("partyId")
        shape = BucketShape.parse(_first(params, "shape", "paymentType") or BucketShape.DAY)
        with self._session_factory() as session:
            states = BucketSelector(session).list_buckets(
                shape,
                party_id=_parse_uuid(raw_party, "partyId") if raw_party else None,
                week_number=_parse_int(params.get("weekNumber"), "weekNumber"),
                week_year=_parse_int(params.get("weekYear"), "weekYear"),
                start=parse_optional_date(params.get("startDate"), "startDate"),
                end=parse_optional_date(params.get("endDate"), "endDate"),
            )
        return {"buckets": [bucket_to_wire(state) for state in states]}

    def expenses(self, start: Any, end: Any) -> dict[str, Any]:
        start_date, end_date = parse_window(start, end)
        with self._session_factory() as session:
            selector = ExpenseSelector(session)
            records = selector.list_for_window(start_date, end_date)
            totals = selector.totals_by_category(start_date, end_date)
        return {
            "startDate": start_date.isoformat(),
            "endDate": end_date.isoformat(),
            "expenses": [
                {
                    "date": record.date.isoformat(),
                    "name": record.name,
                    "category": record.category.value,
                    "amount": money_to_str(record.amount),
                }
                for record in records
            ],
            "totals": {
                category.value: money_to_str(amount) for category, amount in totals.items()
            },
            "total": money_to_str(sum(totals.values(), Decimal("0"))),
        }
