"""
akorfa.engine.streaks — Daily Activity Streak Rule
===================================================

The whole streak transition as one pure function of four inputs, so it
can be tested without a database.  Dates are calendar dates in UTC (see
:func:`akorfa.constants.to_utc_date`).

Transitions, given ``gap = activity_date - last_active``:

============  =========================
gap           current streak becomes
============  =========================
no history    1
0 days        unchanged (same-day repeat)
1 day         current + 1
> 1 day       1
< 0 days      unchanged (late event)
============  =========================

``longest`` is ``max(longest, current)`` after every transition.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True, slots=True)
class StreakState:
    """Streak fields of an account after a transition."""

    current_streak: int
    longest_streak: int
    last_active_date: date | None

    def as_dict(self) -> dict:
        return {
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "last_active_date": (
                self.last_active_date.isoformat() if self.last_active_date else None
            ),
        }


def next_streak(
    last_active: date | None,
    activity_date: date,
    prior_streak: int,
    prior_longest: int,
) -> StreakState:
    """Apply one day of activity to a streak."""
    if last_active is None:
        current = 1
        last = activity_date
    else:
        gap = (activity_date - last_active).days
        if gap == 1:
            current = prior_streak + 1
            last = activity_date
        elif gap > 1:
            current = 1
            last = activity_date
        else:
            # Same day, or an event dated before the last recorded day
            current = prior_streak
            last = last_active

    return StreakState(
        current_streak=current,
        longest_streak=max(prior_longest, current),
        last_active_date=last,
    )
