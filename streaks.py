"""
Journaling streaks and the engagement messages built on them.
"""

from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Union

from models import UserStats

DateLike = Union[date, datetime]

STREAK_MILESTONES = (7, 14, 30, 50, 100, 200, 365)


class StreakResult(NamedTuple):
    current: int
    longest: int


def to_local_day(value: DateLike) -> date:
    """Calendar day of a timestamp in local time."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value


def _distinct_days(entry_dates: Iterable[DateLike]) -> List[date]:
    return sorted({to_local_day(d) for d in entry_dates if d is not None})


def compute_streaks(entry_dates: Iterable[DateLike], today: Optional[date] = None) -> StreakResult:
    """
    Current streak: consecutive days ending today or yesterday.
    Longest streak: longest run of consecutive days anywhere in history.
    Several entries on one day count once and days after today are ignored
    for the current streak. Input order does not matter.
    """
    days = _distinct_days(entry_dates)
    if not days:
        return StreakResult(0, 0)

    today = today or date.today()
    one_day = timedelta(days=1)

    current = 0
    past_days = [d for d in days if d <= today]
    most_recent = past_days[-1] if past_days else None
    if most_recent == today or most_recent == today - one_day:
        expected = most_recent
        for day in reversed(past_days):
            if day != expected:
                break
            current += 1
            expected -= one_day

    longest = 1
    run = 1
    for previous, day in zip(days, days[1:]):
        if day - previous == one_day:
            run += 1
            longest = max(longest, run)
        else:
            run = 1

    return StreakResult(current, max(longest, current))


def build_user_stats(entry_dates: Iterable[DateLike], today: Optional[date] = None) -> UserStats:
    """Recompute a user's stats from the full entry history."""
    dates = [d for d in entry_dates if d is not None]
    streaks = compute_streaks(dates, today=today)
    return UserStats(
        total_entries=len(dates),
        current_streak=streaks.current,
        longest_streak=streaks.longest,
        last_entry_date=max(_to_local_naive(d) for d in dates) if dates else None,
    )


def _to_local_naive(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value
    return datetime.combine(value, datetime.min.time())


def encouragement_message(current_streak: int, total_entries: int) -> str:
    """Generate personalized encouragement based on streak."""
    if current_streak == 0:
        if total_entries == 0:
            return "Start your journaling journey today. Every story begins with one page."
        return "Welcome back! Ready to continue your reflection practice?"
    elif current_streak == 1:
        return "Great start! One day at a time builds lasting habits."
    elif current_streak < 7:
        return f"{current_streak} days strong! You're building something meaningful."
    elif current_streak < 30:
        return f"Amazing {current_streak}-day streak! Consistency is your superpower."
    elif current_streak < 100:
        return f"Incredible {current_streak} days! Your dedication to self-reflection inspires."
    else:
        return f"Legendary {current_streak}-day streak! You've mastered the art of daily reflection."


def next_milestone(current_streak: int) -> Optional[Dict[str, Any]]:
    for milestone in STREAK_MILESTONES:
        if current_streak < milestone:
            return {
                "days": milestone,
                "remaining": milestone - current_streak,
                "progress": round(current_streak / milestone * 100),
            }
    return None
