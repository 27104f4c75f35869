"""
Typed exception hierarchy for the weekly ledger.

Every error carries a ``code`` class attribute (machine-readable, API-safe)
and stores its context as attributes rather than only in the message, so
callers catch by type and report by field:

    try:
        annotations.set_annotation(request)
    except EntryNotFoundError as e:
        return {"error": e.code, "candidates": e.candidates}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    WeeklyLedgerError (base)
    |
    +-- InvalidInputError
    |   +-- BucketInvariantError
    |
    +-- NotFoundError
    |   +-- BucketNotFoundError
    |   +-- EntryNotFoundError
    |   +-- PartyNotFoundError
    |
    +-- ConcurrencyError
    |   +-- ConflictOnWriteError
    |
    +-- StoreError

===============================================================================
ERROR CODES
===============================================================================

Code                        | When raised
----------------------------|---------------------------------------------------
INVALID_INPUT               | Malformed dates, empty batch, bad color/shape
BUCKET_INVARIANT_VIOLATION  | A bucket state would break its week invariants
NOT_FOUND                   | Generic lookup miss
BUCKET_NOT_FOUND            | No bucket for the party (party-total annotation)
ENTRY_NOT_FOUND             | No day/range entry matches an annotation target
PARTY_NOT_FOUND             | Party id unknown to the directory
CONFLICT_ON_WRITE           | Optimistic retries exhausted on one week key
STORE_ERROR                 | Database unavailable or failed (not retried)

ConcurrencyError is transient: every write in this package is idempotent or
convergent, so callers may resubmit the whole request. StoreError is left to
the caller's infrastructure.
"""

from __future__ import annotations

from typing import Any, Sequence


class WeeklyLedgerError(Exception):
    """Base exception for all weekly ledger errors."""

    code: str = "WEEKLY_LEDGER_ERROR"


# Input validation


class InvalidInputError(WeeklyLedgerError):
    """Request rejected before any store access."""

    code: str = "INVALID_INPUT"

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(message)


class BucketInvariantError(InvalidInputError):
    """A bucket state violates its week-window or non-overlap invariants."""

    code: str = "BUCKET_INVARIANT_VIOLATION"

    def __init__(self, week_key: str, reason: str):
        self.week_key = week_key
        self.reason = reason
        super().__init__(f"Bucket {week_key} violates invariants: {reason}")


# Lookup misses


class NotFoundError(WeeklyLedgerError):
    """Nothing matched the lookup. Not fatal; carries diagnostic context."""

    code: str = "NOT_FOUND"


class BucketNotFoundError(NotFoundError):
    """No bucket of the requested shape exists for the party."""

    code: str = "BUCKET_NOT_FOUND"

    def __init__(self, party_id: str, shape: str):
        self.party_id = party_id
        self.shape = shape
        super().__init__(f"No {shape} bucket found for party {party_id}")


class EntryNotFoundError(NotFoundError):
    """No day or range entry with financial data matches the target."""

    code: str = "ENTRY_NOT_FOUND"

    def __init__(
        self,
        party_id: str,
        shape: str,
        target: str,
        candidates: Sequence[str] = (),
    ):
        self.party_id = party_id
        self.shape = shape
        self.target = target
        self.candidates = list(candidates)
        super().__init__(
            f"No {shape} entry {target} with financial data for party "
            f"{party_id} (considered: {', '.join(self.candidates) or 'none'})"
        )


class PartyNotFoundError(NotFoundError):
    """Party id is not in the directory."""

    code: str = "PARTY_NOT_FOUND"

    def __init__(self, party_id: str):
        self.party_id = party_id
        super().__init__(f"Party not found: {party_id}")


# Concurrency


class ConcurrencyError(WeeklyLedgerError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConflictOnWriteError(ConcurrencyError):
    """Optimistic retries on a single week key were exhausted."""

    code: str = "CONFLICT_ON_WRITE"

    def __init__(self, shape: str, week_key: str, attempts: int):
        self.shape = shape
        self.week_key = week_key
        self.attempts = attempts
        super().__init__(
            f"{shape} bucket {week_key} was modified concurrently; "
            f"gave up after {attempts} attempts"
        )


# Storage


class StoreError(WeeklyLedgerError):
    """The ledger store is unavailable or failed the operation."""

    code: str = "STORE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Store failure during {operation}: {detail}")
