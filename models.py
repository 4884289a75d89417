"""
Journal domain types shared by the analyzer, the stats code and the store.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

MOODS = [
    "happy", "sad", "anxious", "grateful", "excited", "calm",
    "stressed", "thoughtful", "content", "overwhelmed", "other",
]
# Moods the analyzer is allowed to emit
ANALYZABLE_MOODS = [m for m in MOODS if m != "other"]
SENTIMENTS = ["positive", "negative", "neutral"]

DEFAULT_MOOD = "thoughtful"
MIN_ENTRY_LENGTH = 10
MAX_EMOTIONS = 5
MAX_KEYWORDS = 10
MAX_SUGGESTIONS = 4
MAX_SUMMARY_LENGTH = 500


def count_words(text: str) -> int:
    """Whitespace-delimited token count."""
    return len((text or "").split())


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (or pass through a datetime/date)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class AnalysisResult:
    mood: str
    confidence: float
    sentiment: str
    sentiment_score: float
    emotions: List[Dict[str, Any]] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    summary: str = ""
    source: str = "fallback"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mood": self.mood,
            "confidence": self.confidence,
            "emotions": self.emotions,
            "sentiment": self.sentiment,
            "sentimentScore": self.sentiment_score,
            "keywords": self.keywords,
            "suggestions": self.suggestions,
            "summary": self.summary,
            "source": self.source,
        }


@dataclass
class JournalEntry:
    user_id: str
    text: str
    date: datetime
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    word_count: int = 0
    mood: str = DEFAULT_MOOD
    confidence: float = 0.0
    sentiment: str = "neutral"
    sentiment_score: float = 0.0
    emotions: List[Dict[str, Any]] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    summary: str = ""
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        self.set_text(self.text)

    def set_text(self, text: str) -> None:
        """Store trimmed text and keep word_count in step with it."""
        self.text = (text or "").strip()
        self.word_count = count_words(self.text)

    def apply_analysis(self, analysis: AnalysisResult) -> None:
        self.mood = analysis.mood
        self.confidence = analysis.confidence
        self.sentiment = analysis.sentiment
        self.sentiment_score = analysis.sentiment_score
        self.emotions = list(analysis.emotions)
        self.keywords = list(analysis.keywords)
        self.suggestions = list(analysis.suggestions)
        self.summary = analysis.summary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "date": _iso(self.date),
            "text": self.text,
            "wordCount": self.word_count,
            "mood": self.mood,
            "confidence": self.confidence,
            "sentiment": self.sentiment,
            "sentimentScore": self.sentiment_score,
            "emotions": self.emotions,
            "keywords": self.keywords,
            "suggestions": self.suggestions,
            "summary": self.summary,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalEntry":
        # word_count is derived from text in __post_init__, never trusted from disk
        return cls(
            id=data["id"],
            user_id=data["userId"],
            date=parse_datetime(data.get("date")) or datetime.now(),
            text=data.get("text", ""),
            mood=data.get("mood") or DEFAULT_MOOD,
            confidence=data.get("confidence", 0.0),
            sentiment=data.get("sentiment") or "neutral",
            sentiment_score=data.get("sentimentScore", 0.0),
            emotions=data.get("emotions") or [],
            keywords=data.get("keywords") or [],
            suggestions=data.get("suggestions") or [],
            summary=data.get("summary") or "",
            created_at=parse_datetime(data.get("createdAt")) or datetime.now(),
            updated_at=parse_datetime(data.get("updatedAt")) or datetime.now(),
        )


@dataclass
class UserStats:
    total_entries: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    last_entry_date: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalEntries": self.total_entries,
            "currentStreak": self.current_streak,
            "longestStreak": self.longest_streak,
            "lastEntryDate": _iso(self.last_entry_date),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "UserStats":
        data = data or {}
        return cls(
            total_entries=data.get("totalEntries", 0),
            current_streak=data.get("currentStreak", 0),
            longest_streak=data.get("longestStreak", 0),
            last_entry_date=parse_datetime(data.get("lastEntryDate")),
        )


@dataclass
class MoodShare:
    """One slice of a mood distribution."""

    mood: str
    count: int
    percentage: int
    color: str

    @property
    def mood_name(self) -> str:
        return self.mood.capitalize()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mood": self.mood,
            "name": self.mood_name,
            "value": self.count,
            "percentage": self.percentage,
            "color": self.color,
        }


def default_preferences() -> Dict[str, Any]:
    return {
        "notifications": True,
        "dailyReminder": {"enabled": False, "time": "20:00"},
    }


@dataclass
class User:
    id: str
    name: str = ""
    email: str = ""
    created_at: datetime = field(default_factory=datetime.now)
    preferences: Dict[str, Any] = field(default_factory=default_preferences)
    stats: UserStats = field(default_factory=UserStats)

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.preferences.get("notifications", True))

    @property
    def daily_reminder(self) -> Dict[str, Any]:
        return self.preferences.get("dailyReminder") or {"enabled": False, "time": "20:00"}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "createdAt": _iso(self.created_at),
            "preferences": self.preferences,
            "stats": self.stats.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        preferences = default_preferences()
        preferences.update(data.get("preferences") or {})
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            email=data.get("email", ""),
            created_at=parse_datetime(data.get("createdAt")) or datetime.now(),
            preferences=preferences,
            stats=UserStats.from_dict(data.get("stats")),
        )
