import json
import random
from types import SimpleNamespace

import httpx
import pytest
from groq import RateLimitError

from config import Config
from models import ANALYZABLE_MOODS, MAX_SUMMARY_LENGTH
from mood_analyzer import (
    DEFAULT_SUMMARY,
    NEGATIVE_MOODS,
    NEUTRAL_MOODS,
    POSITIVE_MOODS,
    SUGGESTION_SETS,
    MoodAnalyzer,
    extract_json_object,
    extract_keywords,
    length_bucket,
    validate_analysis,
)


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(content=None, error=None):
    return SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions(content, error)))


def delegate_analyzer(client, seed=11):
    config = Config({"GROQ_API_KEY": "test-key", "USE_MOCK_AI": False})
    return MoodAnalyzer(config, client=client, clock=lambda: 0.0, rng=random.Random(seed))


# =============================================================================
# JSON extraction
# =============================================================================

def test_extract_json_object_from_surrounding_prose():
    raw = 'Sure! Here is the analysis: {"mood": "calm", "meta": {"n": 1}} Hope it helps.'
    assert extract_json_object(raw) == '{"mood": "calm", "meta": {"n": 1}}'


def test_extract_json_object_ignores_braces_inside_strings():
    raw = 'x {"summary": "a } tricky { one", "mood": "sad"} y'
    assert json.loads(extract_json_object(raw)) == {"summary": "a } tricky { one", "mood": "sad"}


def test_extract_json_object_handles_escaped_quotes():
    raw = '{"summary": "she said \\"hi}\\"", "mood": "happy"}'
    assert json.loads(extract_json_object(raw))["mood"] == "happy"


def test_extract_json_object_skips_unbalanced_prefix():
    assert extract_json_object('{ broken {"a": 1}') == '{"a": 1}'


@pytest.mark.parametrize("raw", ["", "no json here", "{ never closed"])
def test_extract_json_object_returns_none(raw):
    assert extract_json_object(raw) is None


# =============================================================================
# Validation
# =============================================================================

def test_validate_analysis_corrects_out_of_range_values():
    result = validate_analysis({
        "mood": "Euphoric",
        "confidence": 3,
        "sentiment": "POSITIVE",
        "sentimentScore": -7,
        "emotions": [{"emotion": "joy", "confidence": 2}, "hope", 42],
        "keywords": ["k%d" % i for i in range(15)],
        "suggestions": ["a", "b", "c", "d", "e"],
        "summary": "x" * 900,
    })
    assert result.mood == "thoughtful"
    assert result.confidence == 1.0
    assert result.sentiment == "positive"
    assert result.sentiment_score == -1.0
    assert result.emotions == [
        {"emotion": "joy", "confidence": 1.0},
        {"emotion": "hope", "confidence": 0.5},
    ]
    assert len(result.keywords) == 10
    assert len(result.suggestions) == 4
    assert len(result.summary) == MAX_SUMMARY_LENGTH
    assert result.source == "ai"


def test_validate_analysis_fills_defaults():
    result = validate_analysis({})
    assert result.mood == "thoughtful"
    assert result.sentiment == "neutral"
    assert result.confidence == 0.7
    assert result.sentiment_score == 0.0
    assert result.summary == DEFAULT_SUMMARY
    assert result.emotions == [] and result.keywords == [] and result.suggestions == []


def test_validate_analysis_rejects_other_mood():
    assert validate_analysis({"mood": "other"}).mood == "thoughtful"


# =============================================================================
# Keywords
# =============================================================================

def test_extract_keywords_ranks_by_frequency_then_first_seen():
    text = "Running running RUNNING and walking, walking. Swimming!"
    assert extract_keywords(text) == ["running", "walking", "swimming"]


def test_extract_keywords_drops_stop_words_and_short_tokens():
    assert extract_keywords("I feel that today the cat ran home") == ["home"]


def test_extract_keywords_respects_limit():
    text = " ".join(f"word{chr(97 + i)}" for i in range(12))
    assert len(extract_keywords(text)) == 8
    assert len(extract_keywords(text, limit=3)) == 3


@pytest.mark.parametrize("count,bucket", [(0, "short"), (39, "short"), (40, "medium"), (120, "medium"), (121, "long")])
def test_length_bucket(count, bucket):
    assert length_bucket(count) == bucket


# =============================================================================
# Heuristic fallback
# =============================================================================

def test_fallback_positive_branch(fallback_analyzer):
    result = fallback_analyzer.analyze("I feel great and happy after the hike")
    assert result.source == "fallback"
    assert result.mood in POSITIVE_MOODS
    assert result.sentiment == "positive"
    # 0.3 + 2 * 0.15 with no clock jitter, minus the 0.25 offset
    assert result.sentiment_score == pytest.approx(0.35)


def test_fallback_negative_branch(fallback_analyzer):
    result = fallback_analyzer.analyze("I am stressed and worried about the deadline")
    assert result.mood in NEGATIVE_MOODS
    assert result.sentiment == "negative"
    assert result.sentiment_score == pytest.approx(-0.85)


def test_fallback_calm_branch(fallback_analyzer):
    result = fallback_analyzer.analyze("A peaceful quiet evening at home")
    assert result.mood == "calm"
    assert result.sentiment == "positive"
    assert result.sentiment_score == pytest.approx(0.15)


def test_fallback_neutral_branch(fallback_analyzer):
    result = fallback_analyzer.analyze("The meeting moved to Thursday afternoon")
    assert result.mood in NEUTRAL_MOODS
    assert result.sentiment == "neutral"


def test_fallback_tie_between_positive_and_negative_is_neutral(fallback_analyzer):
    result = fallback_analyzer.analyze("I had a great morning but felt sad later")
    assert result.sentiment == "neutral"
    assert result.mood in NEUTRAL_MOODS


def test_fallback_shape(fallback_analyzer):
    text = "Walking along the river, thinking about the garden and the river again."
    result = fallback_analyzer.analyze(text)
    assert [e["emotion"] for e in result.emotions] == [result.mood, "reflective"]
    assert 0.7 <= result.emotions[0]["confidence"] <= 0.9
    assert 0.5 <= result.emotions[1]["confidence"] <= 0.8
    assert result.keywords[0] == "river"
    assert result.suggestions in SUGGESTION_SETS[result.mood]
    assert len(result.suggestions) == 4
    assert result.summary


def test_fallback_bounds_hold_for_any_seed_and_clock():
    text = "happy joy great wonderful amazing love excited perfect awesome " * 3
    for seed in range(40):
        analyzer = MoodAnalyzer(
            Config({"USE_MOCK_AI": True}),
            clock=lambda: seed * 0.001,
            rng=random.Random(seed),
        )
        result = analyzer.analyze(text)
        assert -1.0 <= result.sentiment_score <= 1.0
        assert 0.0 <= result.confidence <= 0.95
        assert result.mood in ANALYZABLE_MOODS


def test_fallback_is_reproducible_with_pinned_clock_and_rng():
    text = "Some days are just long and quiet, nothing more."
    first = MoodAnalyzer(Config({"USE_MOCK_AI": True}), clock=lambda: 1.5, rng=random.Random(5)).analyze(text)
    second = MoodAnalyzer(Config({"USE_MOCK_AI": True}), clock=lambda: 1.5, rng=random.Random(5)).analyze(text)
    assert first == second


def test_pick_suggestions_returns_a_copy(fallback_analyzer):
    picked = fallback_analyzer.pick_suggestions("happy")
    picked.append("extra")
    assert all(len(s) == 4 for s in SUGGESTION_SETS["happy"])


# =============================================================================
# Delegate path
# =============================================================================

def test_delegate_result_is_validated():
    payload = {
        "mood": "Grateful",
        "confidence": 0.9,
        "emotions": [{"emotion": "gratitude", "confidence": 0.8}],
        "sentiment": "positive",
        "sentimentScore": 0.7,
        "keywords": ["family", "dinner"],
        "suggestions": ["Call your sister", "Write a thank-you note", "Plan the next dinner"],
        "summary": "A warm evening with family.",
    }
    client = fake_client(content="Here you go:\n" + json.dumps(payload))
    result = delegate_analyzer(client).analyze("Dinner with my family made me so thankful.")

    assert result.source == "ai"
    assert result.mood == "grateful"
    assert result.keywords == ["family", "dinner"]
    assert result.summary == "A warm evening with family."

    call = client.chat.completions.calls[0]
    assert call["model"] == "llama-3.1-8b-instant"
    assert "Dinner with my family" in call["messages"][1]["content"]


def test_delegate_suggestions_are_topped_up():
    client = fake_client(content=json.dumps({"mood": "calm", "suggestions": ["Breathe"]}))
    result = delegate_analyzer(client).analyze("A slow and steady afternoon.")
    assert result.suggestions[0] == "Breathe"
    assert len(result.suggestions) == 3
    assert result.suggestions[1:] == SUGGESTION_SETS["calm"][0][:2]


@pytest.mark.parametrize("content", ["I cannot help with that.", "{not: valid json}", "[1, 2, 3]", None])
def test_unusable_delegate_reply_falls_back(content):
    result = delegate_analyzer(fake_client(content=content)).analyze("Today felt quiet and calm overall.")
    assert result.source == "fallback"


def test_delegate_error_falls_back():
    client = fake_client(error=RuntimeError("connection reset"))
    result = delegate_analyzer(client).analyze("Work was stressed and busy today.")
    assert result.source == "fallback"
    assert result.sentiment == "negative"


def test_delegate_rate_limit_falls_back():
    response = httpx.Response(429, request=httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions"))
    client = fake_client(error=RateLimitError("rate limited", response=response, body=None))
    result = delegate_analyzer(client).analyze("Nothing special, just an ordinary day.")
    assert result.source == "fallback"


def test_delegate_is_skipped_without_key_or_in_mock_mode():
    client = fake_client(content="{}")
    for overrides in ({"GROQ_API_KEY": None}, {"GROQ_API_KEY": "k", "USE_MOCK_AI": True}):
        analyzer = MoodAnalyzer(Config(overrides), client=client, clock=lambda: 0.0, rng=random.Random(1))
        assert analyzer.analyze("A normal day with some errands.").source == "fallback"
    assert client.chat.completions.calls == []


def test_force_fallback_bypasses_delegate():
    client = fake_client(content=json.dumps({"mood": "happy"}))
    result = delegate_analyzer(client).analyze("A normal day with some errands.", force_fallback=True)
    assert result.source == "fallback"
    assert client.chat.completions.calls == []


@pytest.mark.parametrize("extra", ["happy", "happy great", "happy great wonderful"])
def test_positive_words_never_lower_the_score(extra):
    neutral = "The meeting moved to Thursday afternoon"
    for seed in range(20):
        for clock in (0.0, 0.004, 0.010):
            base = MoodAnalyzer(Config({"USE_MOCK_AI": True}), clock=lambda: clock, rng=random.Random(seed))
            more = MoodAnalyzer(Config({"USE_MOCK_AI": True}), clock=lambda: clock, rng=random.Random(seed))
            before = base.analyze(neutral).sentiment_score
            after = more.analyze(f"{neutral} {extra}").sentiment_score
            assert after >= before
