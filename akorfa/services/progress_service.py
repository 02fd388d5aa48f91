"""
akorfa.services.progress_service — Score & Streak Updater
==========================================================

The only code that mutates :class:`~akorfa.database.models.Account`
progression fields.

Score changes are a single ``UPDATE … SET score = score + :delta``
statement, so concurrent deltas on one account always add up (+5 and +3
give +8 under any interleaving).  Nothing here reads the score, adds in
Python and writes it back.

Streak changes lock the account row (``SELECT … FOR UPDATE``) and apply
the pure rule from :mod:`akorfa.engine.streaks`.

Session-level functions (``apply_delta``, ``recompute_streak``) join the
caller's transaction.  Engine-level wrappers own their transaction.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import Engine, case, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from akorfa.database.engine import get_session
from akorfa.database.models import Account, ActivityKind
from akorfa.engine.streaks import StreakState, next_streak
from akorfa.errors import AccountNotFoundError, ValidationError, translate_store_errors
from akorfa.services import ledger

logger = logging.getLogger(__name__)

# Dialect INSERT constructs that support ``on_conflict_do_nothing``
_INSERT_IGNORING_CONFLICT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def get_or_create_account(
    session: Session, account_id: str, display_name: str | None = None,
) -> Account:
    """Fetch or insert an Account row.

    The insert is ``ON CONFLICT DO NOTHING`` on the primary key, so two
    transactions creating the same new account both end up with the one
    row instead of the slower one failing.
    """
    account = session.get(Account, account_id)
    if account is not None:
        if display_name and account.display_name != display_name:
            account.display_name = display_name
        return account

    insert = _INSERT_IGNORING_CONFLICT[session.get_bind().dialect.name]
    result = session.execute(
        insert(Account)
        .values(id=account_id, display_name=display_name)
        .on_conflict_do_nothing(index_elements=[Account.id])
    )
    if result.rowcount:
        logger.info("Created account %s", account_id)

    account = session.get(Account, account_id)
    if display_name and account.display_name != display_name:
        account.display_name = display_name
    return account


# ---------------------------------------------------------------------------
# Score
# ---------------------------------------------------------------------------
def apply_delta(
    session: Session, account_id: str, delta: float, *, xp_delta: int = 0,
) -> float:
    """Atomically add *delta* to the account's score and return the new score.

    The score never drops below zero.  *xp_delta* is added to XP in the
    same statement.

    Raises
    ------
    AccountNotFoundError
        If no account row matched.
    """
    new_score = Account.score + delta
    values: dict = {"score": case((new_score < 0, 0.0), else_=new_score)}
    if xp_delta:
        values["xp"] = Account.xp + xp_delta

    result = session.execute(
        update(Account)
        .where(Account.id == account_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise AccountNotFoundError(account_id)

    # Same transaction as the UPDATE, so this is our own write
    return float(session.scalar(select(Account.score).where(Account.id == account_id)))


@translate_store_errors
def apply_score_delta(engine: Engine, account_id: str, delta: float) -> float:
    """Apply a raw score delta in its own transaction.

    Not idempotent: a caller that timed out must not blindly retry.  Prefer
    :func:`adjust_score` (which leaves an audit trail) for manual changes.
    """
    with get_session(engine) as session:
        return apply_delta(session, account_id, delta)


@translate_store_errors
def adjust_score(
    engine: Engine,
    account_id: str,
    delta: int,
    *,
    reason: str = "",
    actor_id: str | None = None,
) -> float:
    """Manual signed score adjustment recorded as a ledger event."""
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValidationError("delta must be an integer")
    with get_session(engine) as session:
        new_score = apply_delta(session, account_id, delta)
        ledger.append(
            session,
            account_id,
            ActivityKind.MANUAL_ADJUSTMENT,
            delta,
            {"reason": reason, "actor_id": actor_id},
        )
    logger.info(
        "Manual score adjustment %+d for %s by %s (%s) → %.2f",
        delta, account_id, actor_id, reason, new_score,
    )
    return new_score


# ---------------------------------------------------------------------------
# Streak
# ---------------------------------------------------------------------------
def recompute_streak(session: Session, account_id: str, activity_date: date) -> StreakState:
    """Fold one day of activity into the account's streak (row-locked)."""
    account = session.scalar(
        select(Account)
        .where(Account.id == account_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if account is None:
        raise AccountNotFoundError(account_id)

    state = next_streak(
        account.last_active_date,
        activity_date,
        account.current_streak or 0,
        account.longest_streak or 0,
    )
    account.current_streak = state.current_streak
    account.longest_streak = state.longest_streak
    account.last_active_date = state.last_active_date
    session.flush()
    return state


@translate_store_errors
def record_streak(engine: Engine, account_id: str, activity_date: date) -> StreakState:
    """Recompute the streak in its own transaction."""
    with get_session(engine) as session:
        return recompute_streak(session, account_id, activity_date)


@translate_store_errors
def get_streak(engine: Engine, account_id: str) -> StreakState:
    """Current streak fields; an unknown account has no streak."""
    with Session(engine) as session:
        account = session.get(Account, account_id)
        if account is None:
            return StreakState(0, 0, None)
        return StreakState(
            account.current_streak or 0,
            account.longest_streak or 0,
            account.last_active_date,
        )


@translate_store_errors
def get_account(engine: Engine, account_id: str) -> dict:
    """Point-in-time read of an account's progression fields."""
    with Session(engine) as session:
        account = session.get(Account, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account_dict(account)


def account_dict(account: Account) -> dict:
    return {
        "id": account.id,
        "display_name": account.display_name,
        "score": float(account.score or 0.0),
        "xp": account.xp or 0,
        "coins": account.coins or 0,
        "current_streak": account.current_streak or 0,
        "longest_streak": account.longest_streak or 0,
        "last_active_date": (
            account.last_active_date.isoformat() if account.last_active_date else None
        ),
    }
