"""
dsa_mentor/services/streak_engine.py
Streak state machine over (last_active_date, streak)

Transitions, with gap = whole calendar days between last_active_date and today:
- no previous activity  -> streak = 1
- gap <= 0              -> unchanged (same day; backdated/skewed clocks never move the date back)
- gap == 1              -> streak + 1
- gap > 1               -> streak = 1 (broken, restarts at one active day)
last_active_date becomes today on every changing transition.
"""
from datetime import date, datetime
from typing import NamedTuple, Optional, Union

from dsa_mentor.orm.account import Account


class StreakState(NamedTuple):
    streak: int
    last_active_date: Optional[date]


def _as_date(value: Union[date, datetime, None]) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    return value


def today_utc() -> date:
    return datetime.utcnow().date()


def gap_days(last_active: Union[date, datetime, None], today: Union[date, datetime]) -> Optional[int]:
    last_active = _as_date(last_active)
    if last_active is None:
        return None
    return (_as_date(today) - last_active).days


def next_state(state: StreakState, today: Union[date, datetime]) -> StreakState:
    """Pure transition function."""
    today = _as_date(today)
    gap = gap_days(state.last_active_date, today)

    if gap is None:
        return StreakState(streak=1, last_active_date=today)
    if gap <= 0:
        return state
    if gap == 1:
        return StreakState(streak=state.streak + 1, last_active_date=today)
    return StreakState(streak=1, last_active_date=today)


def record_activity(account: Account, today: Union[date, datetime, None] = None) -> StreakState:
    """Apply a qualifying activity to the account in place (caller commits)."""
    current = StreakState(streak=account.streak or 0, last_active_date=_as_date(account.last_active_date))
    new = next_state(current, today or today_utc())
    account.streak = new.streak
    account.last_active_date = new.last_active_date
    return new
