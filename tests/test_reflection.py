import pytest

from models import MoodShare
from reflection import EMPTY_REFLECTION, closing_clause, dominant_mood, reflect, tone_clause
from stats import mood_distribution


def test_empty_period_gets_the_prompt_text():
    assert reflect([], []) == EMPTY_REFLECTION


def test_positive_period(make_entry):
    entries = [
        make_entry(mood="happy", sentiment_score=0.6),
        make_entry(mood="happy", sentiment_score=0.4),
        make_entry(mood="calm", sentiment_score=0.2),
    ]
    text = reflect(entries, mood_distribution(entries))
    assert text == (
        "Over the past period, you've made 3 journal entries. "
        "Your overall emotional tone has been quite positive, showing good mental wellness. "
        "Your most frequent mood was happy, appearing in 67% of your entries. "
        "Keep nurturing the activities and mindset that support your positive well-being."
    )


def test_challenging_period_suggests_coping(make_entry):
    entries = [make_entry(mood="anxious", sentiment_score=-0.5)]
    text = reflect(entries, mood_distribution(entries))
    assert "processing some challenging emotions" in text
    assert "anxious, appearing in 100%" in text
    assert text.endswith("self-care practices into your routine.")


@pytest.mark.parametrize("avg,fragment", [
    (0.21, "quite positive"),
    (0.2, "balanced"),
    (-0.2, "balanced"),
    (-0.21, "challenging emotions"),
])
def test_tone_thresholds(avg, fragment):
    assert fragment in tone_clause(avg)


@pytest.mark.parametrize("mood", ["thoughtful", "calm", "other", "sad"])
def test_default_closing(mood):
    assert closing_clause(mood).startswith("Continue this reflective practice")


def test_dominant_mood_first_wins_ties():
    shares = [MoodShare("sad", 2, 40, "#000"), MoodShare("happy", 2, 40, "#000"), MoodShare("calm", 1, 20, "#000")]
    assert dominant_mood(shares).mood == "sad"
