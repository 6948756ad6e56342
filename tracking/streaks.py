"""Daily streak computation over completed sessions."""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Union

logger = logging.getLogger(__name__)

DayLike = Union[date, datetime, str]


@dataclass(frozen=True)
class StreakResult:
    current: int
    best: int


def day_key(timestamp: Union[datetime, float, int]) -> date:
    """
    Map a timestamp to the local calendar day it falls on.
    
    Args:
        timestamp: Naive local datetime, aware datetime, or POSIX seconds
    
    Returns:
        Local calendar date
    """
    if isinstance(timestamp, (int, float)):
        return datetime.fromtimestamp(timestamp).date()
    if timestamp.tzinfo is not None:
        return timestamp.astimezone().date()
    return timestamp.date()


def _to_date(value: DayLike) -> date:
    if isinstance(value, datetime):
        return day_key(value)
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def compute_streaks(
    days: Iterable[DayLike],
    today: Optional[DayLike] = None,
    allow_yesterday: bool = True
) -> StreakResult:
    """
    Compute the current and best run of consecutive active days.
    
    The current streak is the run ending today. If there is no activity
    today and allow_yesterday is set, a run ending yesterday still counts,
    so the streak survives until the end of the day it would break.
    
    Args:
        days: Dates with at least one completed session (duplicates allowed)
        today: Reference day (defaults to the local date)
        allow_yesterday: Keep a streak alive that ended yesterday
    
    Returns:
        StreakResult with current and best
    """
    unique_days = sorted({_to_date(d) for d in days})
    if not unique_days:
        return StreakResult(current=0, best=0)
    
    today = _to_date(today) if today is not None else date.today()
    
    best = 0
    run = 0
    previous = None
    for day in unique_days:
        if previous is not None and day - previous == timedelta(days=1):
            run += 1
        else:
            run = 1
        best = max(best, run)
        previous = day
    
    active = set(unique_days)
    if today in active:
        anchor = today
    elif allow_yesterday and today - timedelta(days=1) in active:
        anchor = today - timedelta(days=1)
    else:
        anchor = None
    
    current = 0
    while anchor is not None and anchor in active:
        current += 1
        anchor -= timedelta(days=1)
    
    return StreakResult(current=current, best=max(best, current))


def streaks_for_user(store, user_id: str, today: Optional[DayLike] = None, allow_yesterday: bool = True) -> StreakResult:
    """
    Read completed-session days from a store and compute streaks.
    
    Args:
        store: SessionStore implementation
        user_id: Owning user
        today: Reference day (defaults to the local date)
        allow_yesterday: Keep a streak alive that ended yesterday
    
    Returns:
        StreakResult
    """
    days = store.list_completed_session_dates(user_id)
    result = compute_streaks(days, today=today, allow_yesterday=allow_yesterday)
    logger.debug(f"Streaks for {user_id}: current={result.current}, best={result.best}")
    return result
