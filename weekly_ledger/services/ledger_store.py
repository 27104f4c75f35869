"""
LedgerStore -- keyed persistence for DayBucket and RangeBucket.

Responsibility:
    Lookup by WeekKey, overlap queries over week windows, and the atomic
    ``upsert(week_key, mutator)`` that both write paths go through.  Rows
    are converted to immutable bucket states on the way out; mutators never
    see ORM objects.

Architecture position:
    Services -- imperative shell.  Unlike request-scoped services, the store
    owns its transactions: every upsert attempt runs in its own short
    ``session_scope`` so a lost race can be rolled back and replayed from a
    fresh read.

Invariants enforced:
    - Per-key serialization: each row carries a version counter
      (``version_id_col``).  An UPDATE that finds the row already bumped by
      another writer raises StaleDataError; a concurrent first INSERT of the
      same key hits the unique constraint.  Either way the attempt is rolled
      back, the bucket re-read and the mutator applied again, at most
      ``max_attempts`` times.  Writes to different keys never contend.
    - check_invariants() runs on every proposed state before it is written.
    - A mutator that returns the state unchanged causes no write.

Failure modes:
    - ConflictOnWriteError: retries exhausted on one key.
    - StoreError: database unavailable (OperationalError / DBAPIError), not
      retried.
    - Whatever the mutator raises propagates unchanged after rollback.
"""

from __future__ import annotations

import time
from datetime import date
from typing import Callable, Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from weekly_ledger.db.engine import session_scope
from weekly_ledger.domain.buckets import DayBucketState, RangeBucketState
from weekly_ledger.domain.clock import Clock
from weekly_ledger.domain.values import BucketShape, WeekKey
from weekly_ledger.exceptions import (
    BucketInvariantError,
    ConflictOnWriteError,
    StoreError,
)
from weekly_ledger.logging_config import get_logger
from weekly_ledger.models.ledger_bucket import DayBucket, LedgerBucketBase, RangeBucket

logger = get_logger("services.ledger_store")

StateT = TypeVar("StateT", DayBucketState, RangeBucketState)

Mutator = Callable[[StateT], StateT]


class BucketStore(Generic[StateT]):
    """
    Store for one bucket shape.

    Contract:
        ``find`` returns None for a missing key (not an exception).
        ``upsert`` never reports a missing key: it starts from
        ``fresh(week_key)`` (isApproved false, red party total) when no row
        exists.
    """

    DEFAULT_MAX_ATTEMPTS = 5

    def __init__(
        self,
        shape: BucketShape,
        model: type[LedgerBucketBase],
        state_type: type[StateT],
        payload_attr: str,
        session_factory: sessionmaker[Session],
        clock: Clock,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = 0.005,
    ):
        self.shape = shape
        self._model = model
        self._state_type = state_type
        self._payload_attr = payload_attr
        self._session_factory = session_factory
        self._clock = clock
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _key_filter(self, week_key: WeekKey):
        return select(self._model).where(
            self._model.party_id == week_key.party_id,
            self._model.week_number == week_key.week_number,
            self._model.week_year == week_key.week_year,
        )

    def _read(self, operation: str, query) -> list[StateT]:
        try:
            with self._session_factory() as session:
                rows = session.execute(query).scalars().all()
                return [self._state_type.from_model(row) for row in rows]
        except DBAPIError as exc:
            raise StoreError(operation, str(exc.orig or exc)) from exc

    def find(self, week_key: WeekKey) -> StateT | None:
        found = self._read("find", self._key_filter(week_key))
        return found[0] if found else None

    def find_all_overlapping(self, start: date, end: date) -> list[StateT]:
        """Buckets whose [week_start_date, week_end_date] intersects [start, end]."""
        query = (
            select(self._model)
            .where(
                self._model.week_start_date <= end,
                self._model.week_end_date >= start,
            )
            .order_by(self._model.week_start_date, self._model.party_id)
        )
        return self._read("find_all_overlapping", query)

    def find_for_party(self, party_id: UUID) -> list[StateT]:
        """All buckets of a party, most recently created first."""
        query = (
            select(self._model)
            .where(self._model.party_id == party_id)
            .order_by(
                self._model.created_at.desc(),
                self._model.week_year.desc(),
                self._model.week_number.desc(),
            )
        )
        return self._read("find_for_party", query)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _apply(self, row: LedgerBucketBase, state: StateT) -> None:
        row.week_start_date = state.week_start_date
        row.week_end_date = state.week_end_date
        row.weekly_net_payable_name = state.weekly_net_payable.name
        row.weekly_net_payable_amount = state.weekly_net_payable.amount
        row.party_total_annotation = state.party_total_annotation.value
        row.is_approved = state.is_approved
        # Assign a new object so the JSON column is flagged dirty.
        setattr(row, self._payload_attr, state.entries_payload())

    def _attempt(
        self,
        week_key: WeekKey,
        mutator: Mutator,
        actor_id: UUID | None,
    ) -> tuple[StateT, bool]:
        with session_scope(self._session_factory) as session:
            row = session.execute(
                self._key_filter(week_key).execution_options(populate_existing=True)
            ).scalar_one_or_none()
            current = (
                self._state_type.from_model(row)
                if row is not None
                else self._state_type.fresh(week_key)
            )

            proposed = mutator(current)

            if proposed.key != week_key:
                raise BucketInvariantError(
                    str(week_key), f"mutator moved bucket to {proposed.key}"
                )
            if row is not None and proposed == current:
                return current, False
            proposed.check_invariants()

            now = self._clock.now()
            if row is None:
                row = self._model(
                    party_id=week_key.party_id,
                    week_number=week_key.week_number,
                    week_year=week_key.week_year,
                    created_at=now,
                    created_by_id=actor_id,
                )
                session.add(row)
            self._apply(row, proposed)
            row.updated_at = now
            session.flush()
            return self._state_type.from_model(row), True

    def upsert(
        self,
        week_key: WeekKey,
        mutator: Mutator,
        actor_id: UUID | None = None,
    ) -> StateT:
        """
        Fetch-or-create the bucket for ``week_key``, apply ``mutator`` and
        write the result, serialized against other writers of the same key.

        Raises:
            ConflictOnWriteError: The key kept changing underneath us.
            StoreError: The database failed.
        """
        for attempt in range(1, self._max_attempts + 1):
            try:
                saved, written = self._attempt(week_key, mutator, actor_id)
            except (StaleDataError, IntegrityError) as exc:
                logger.warning(
                    "write_conflict_retry",
                    extra={
                        "shape": self.shape.value,
                        "week_key": str(week_key),
                        "attempt": attempt,
                        "max_attempts": self._max_attempts,
                        "conflict": type(exc).__name__,
                    },
                )
                if attempt < self._max_attempts:
                    time.sleep(self._retry_delay * attempt)
                continue
            except DBAPIError as exc:
                raise StoreError("upsert", str(exc.orig or exc)) from exc

            logger.info(
                "bucket_upserted" if written else "bucket_unchanged",
                extra={
                    "shape": self.shape.value,
                    "week_key": str(week_key),
                    "attempt": attempt,
                },
            )
            return saved

        raise ConflictOnWriteError(self.shape.value, str(week_key), self._max_attempts)


class LedgerStore:
    """Both bucket collections behind one object."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock,
        max_attempts: int = BucketStore.DEFAULT_MAX_ATTEMPTS,
    ):
        self.days: BucketStore[DayBucketState] = BucketStore(
            BucketShape.DAY,
            DayBucket,
            DayBucketState,
            "days",
            session_factory,
            clock,
            max_attempts,
        )
        self.ranges: BucketStore[RangeBucketState] = BucketStore(
            BucketShape.RANGE,
            RangeBucket,
            RangeBucketState,
            "ranges",
            session_factory,
            clock,
            max_attempts,
        )

    def for_shape(self, shape: BucketShape) -> BucketStore:
        return self.days if shape == BucketShape.DAY else self.ranges
