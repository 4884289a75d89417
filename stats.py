"""
Aggregate journaling statistics for a time window.
"""

import calendar
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from models import JournalEntry, MoodShare, UserStats
from reflection import reflect
from streaks import to_local_day

TREND_DAYS = 7
STATS_RANGES = ("week", "month", "year")
FALLBACK_COLOR = "#6B7280"

MOOD_COLORS = {
    "happy": "#10B981",
    "grateful": "#8B5CF6",
    "excited": "#F59E0B",
    "calm": "#3B82F6",
    "content": "#06D6A0",
    "thoughtful": "#6B7280",
    "stressed": "#EF4444",
    "anxious": "#F97316",
    "sad": "#8B5A7D",
    "overwhelmed": "#DC2626",
}


def round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def mood_color(mood: str) -> str:
    return MOOD_COLORS.get(mood, FALLBACK_COLOR)


@dataclass
class TrendPoint:
    date: date
    mood_score: int
    entry_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "mood": self.mood_score,
            "entries": self.entry_count,
        }


@dataclass
class AggregateStatsResult:
    range_start: datetime
    total_entries: int
    total_words: int
    average_words_per_entry: int
    mood_distribution: List[MoodShare] = field(default_factory=list)
    mood_trend: List[TrendPoint] = field(default_factory=list)
    average_mood: float = 0.0
    weekly_reflection: str = ""
    current_streak: int = 0
    longest_streak: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rangeStart": self.range_start.isoformat(),
            "totalEntries": self.total_entries,
            "totalWords": self.total_words,
            "averageWordsPerEntry": self.average_words_per_entry,
            "currentStreak": self.current_streak,
            "longestStreak": self.longest_streak,
            "moodDistribution": [share.to_dict() for share in self.mood_distribution],
            "moodTrend": [point.to_dict() for point in self.mood_trend],
            "averageMood": self.average_mood,
            "weeklyReflection": self.weekly_reflection,
        }


def range_start_for(range_name: str, now: Optional[datetime] = None) -> datetime:
    """Start of a trailing stats window: week, month or year."""
    now = now or datetime.now()
    if range_name == "week":
        return now - timedelta(days=7)
    if range_name == "month":
        year, month = (now.year, now.month - 1) if now.month > 1 else (now.year - 1, 12)
        day = min(now.day, calendar.monthrange(year, month)[1])
        return now.replace(year=year, month=month, day=day)
    if range_name == "year":
        year = now.year - 1
        day = min(now.day, calendar.monthrange(year, now.month)[1])
        return now.replace(year=year, day=day)
    raise ValueError(f"Range must be one of {', '.join(STATS_RANGES)}")


def mood_distribution(entries: Sequence[JournalEntry]) -> List[MoodShare]:
    counts: Dict[str, int] = {}
    for entry in entries:
        counts[entry.mood] = counts.get(entry.mood, 0) + 1

    total = len(entries)
    return [
        MoodShare(
            mood=mood,
            count=count,
            percentage=int(round_half_up(count / total * 100)) if total else 0,
            color=mood_color(mood),
        )
        for mood, count in counts.items()
    ]


def mood_trend(entries: Sequence[JournalEntry], today: Optional[date] = None) -> List[TrendPoint]:
    """One point per day for the trailing week, oldest first, on a 0-10 scale."""
    today = today or date.today()
    by_day: Dict[date, List[float]] = {}
    for entry in entries:
        by_day.setdefault(to_local_day(entry.date), []).append(entry.sentiment_score or 0.0)

    points = []
    for offset in range(TREND_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        scores = by_day.get(day, [])
        if scores:
            average = sum(scores) / len(scores)
            score = int(round_half_up((average + 1) * 5))
        else:
            score = 0
        points.append(TrendPoint(date=day, mood_score=score, entry_count=len(scores)))
    return points


def aggregate(
    entries: Sequence[JournalEntry],
    range_start: datetime,
    user_stats: Optional[UserStats] = None,
    today: Optional[date] = None,
) -> AggregateStatsResult:
    """
    Build the stats payload for entries already filtered to one user and
    window. Streaks are read from the persisted user_stats rather than
    recomputed here.
    """
    total_entries = len(entries)
    total_words = sum(entry.word_count or 0 for entry in entries)
    distribution = mood_distribution(entries)
    trend = mood_trend(entries, today=today)
    average_mood = round_half_up(sum(p.mood_score for p in trend) / len(trend), 1)
    stats = user_stats or UserStats()

    return AggregateStatsResult(
        range_start=range_start,
        total_entries=total_entries,
        total_words=total_words,
        average_words_per_entry=int(round_half_up(total_words / total_entries)) if total_entries else 0,
        mood_distribution=distribution,
        mood_trend=trend,
        average_mood=average_mood,
        weekly_reflection=reflect(entries, distribution),
        current_streak=stats.current_streak,
        longest_streak=stats.longest_streak,
    )
