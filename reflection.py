"""
Narrative reflection over a period of journal entries.
"""

from typing import Sequence

from models import JournalEntry, MoodShare

EMPTY_REFLECTION = (
    "Start journaling to get personalized insights about your emotional patterns "
    "and well-being trends."
)

POSITIVE_CLOSING_MOODS = ("happy", "grateful")
COPING_CLOSING_MOODS = ("stressed", "anxious")


def tone_clause(avg_sentiment: float) -> str:
    if avg_sentiment > 0.2:
        return "Your overall emotional tone has been quite positive, showing good mental wellness."
    if avg_sentiment < -0.2:
        return ("You've been processing some challenging emotions. "
                "Remember that difficult periods are part of growth.")
    return "Your emotional state has been balanced, showing good emotional regulation."


def closing_clause(mood: str) -> str:
    if mood in POSITIVE_CLOSING_MOODS:
        return "Keep nurturing the activities and mindset that support your positive well-being."
    if mood in COPING_CLOSING_MOODS:
        return "Consider incorporating more stress-relief techniques and self-care practices into your routine."
    return "Continue this reflective practice to maintain your emotional awareness and growth."


def dominant_mood(mood_distribution: Sequence[MoodShare]) -> MoodShare:
    """Largest count; the first one wins a tie."""
    best = mood_distribution[0]
    for share in mood_distribution[1:]:
        if share.count > best.count:
            best = share
    return best


def reflect(entries: Sequence[JournalEntry], mood_distribution: Sequence[MoodShare]) -> str:
    if not entries or not mood_distribution:
        return EMPTY_REFLECTION

    total = len(entries)
    avg_sentiment = sum(entry.sentiment_score or 0.0 for entry in entries) / total
    dominant = dominant_mood(mood_distribution)

    return " ".join([
        f"Over the past period, you've made {total} journal entries.",
        tone_clause(avg_sentiment),
        f"Your most frequent mood was {dominant.mood_name.lower()}, "
        f"appearing in {dominant.percentage}% of your entries.",
        closing_clause(dominant.mood),
    ])
