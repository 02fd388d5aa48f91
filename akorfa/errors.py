"""
akorfa.errors — Exception Hierarchy
====================================

Everything the engine raises derives from :class:`AkorfaError` so request
handlers can map failures to responses in one place.

Two outcomes are deliberately *not* exceptions:

* a badge-award uniqueness conflict is reported as
  :attr:`~akorfa.services.badge_service.AwardOutcome.ALREADY_AWARDED`;
* a stability vector outside the formula's domain is reported as
  ``StabilityResult.valid is False``.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

P = ParamSpec("P")
T = TypeVar("T")


class AkorfaError(Exception):
    """Base class for engine errors."""


class ValidationError(AkorfaError, ValueError):
    """Caller supplied input the engine cannot accept.

    Surfaced immediately, never retried.
    """


class AccountNotFoundError(AkorfaError, LookupError):
    """The referenced account does not exist."""

    def __init__(self, account_id: str) -> None:
        super().__init__(f"Account not found: {account_id!r}")
        self.account_id = account_id


class DuplicateEventError(AkorfaError):
    """An activity with the same deduplication key was already recorded."""

    def __init__(self, source_event_id: str, existing_event_id: int | None) -> None:
        super().__init__(f"Activity already recorded: {source_event_id!r}")
        self.source_event_id = source_event_id
        self.existing_event_id = existing_event_id


class TransientStoreError(AkorfaError):
    """The store was unreachable or timed out.

    Retryable by the caller.  Only retry ``record_activity`` when the
    original call carried a ``source_event_id``; raw point deltas are not
    idempotent.
    """


class BadgeAwardError(AkorfaError):
    """One or more badge awards failed for a reason other than a conflict.

    The other awards of the same evaluation are still attempted; the ones
    that succeeded are carried in :attr:`awarded`.
    """

    def __init__(self, account_id: str, awarded: list, failures: list[tuple[int, Exception]]):
        names = ", ".join(str(badge_id) for badge_id, _ in failures)
        super().__init__(
            f"Failed to award {len(failures)} badge(s) to {account_id!r}: {names}"
        )
        self.account_id = account_id
        self.awarded = awarded
        self.failures = failures


def is_transient(exc: BaseException) -> bool:
    """True for SQLAlchemy errors that mean "store unavailable"."""
    if isinstance(exc, (OperationalError, PoolTimeoutError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


def translate_store_errors(func: Callable[P, T]) -> Callable[P, T]:
    """Re-raise connectivity failures from *func* as :class:`TransientStoreError`.

    Integrity and programming errors pass through untouched.
    """

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        try:
            return func(*args, **kwargs)
        except (DBAPIError, PoolTimeoutError) as exc:
            if is_transient(exc):
                raise TransientStoreError(str(exc)) from exc
            raise

    return wrapper
