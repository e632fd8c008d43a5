import pytest
from pydantic import ValidationError

from conftest import make_entry
from schemas import (
    BehavioralData,
    EmotionScores,
    JournalEntry,
    User,
    parse_timestamp,
    round_half_up,
    to_iso,
)


def test_dominant_is_argmax():
    scores = EmotionScores(joy=0.1, sadness=0.2, anger=0.05, fear=0.7, calm=0.3, surprise=0.0)
    assert scores.dominant() == "fear"


def test_dominant_ties_resolve_in_canonical_order():
    assert EmotionScores(sadness=0.5, calm=0.5).dominant() == "sadness"
    assert EmotionScores().dominant() == "joy"


def test_create_scales_intensity_and_derives_dominant():
    behavior = BehavioralData.from_elapsed("rough day", 3)
    entry = JournalEntry.create(
        text="rough day",
        emotions=EmotionScores(sadness=0.9, anger=0.4),
        intensity=0.65,
        confidence=88.4,
        behavior_confidence=91.5,
        user_rating=2,
        behavioral_signals=behavior,
    )
    assert entry.dominant_emotion == "sadness"
    assert entry.intensity == 7
    assert entry.confidence == 88
    assert entry.behavior_confidence == 92
    assert entry.user_id == "user-1"
    assert entry.timestamp.endswith("Z")


def test_create_clamps_out_of_range_classifier_output():
    entry = JournalEntry.create(
        text="x",
        emotions=EmotionScores(joy=1),
        intensity=4.2,
        confidence=140,
        behavior_confidence=-3,
        user_rating=5,
        behavioral_signals=BehavioralData.from_elapsed("x", 1),
    )
    assert entry.intensity == 10
    assert entry.confidence == 100
    assert entry.behavior_confidence == 0


def test_entry_rejects_dominant_that_is_not_the_top_score():
    data = make_entry("joy").model_dump(by_alias=True)
    data["dominantEmotion"] = "anger"
    with pytest.raises(ValidationError):
        JournalEntry.model_validate(data)


def test_entry_rejects_bad_timestamp():
    data = make_entry("joy").model_dump(by_alias=True)
    data["timestamp"] = "yesterday-ish"
    with pytest.raises(ValidationError):
        JournalEntry.model_validate(data)


def test_entry_dumps_camel_case():
    data = make_entry("calm").model_dump(by_alias=True)
    assert {"userId", "dominantEmotion", "behaviorConfidence", "userRating", "behavioralSignals"} <= set(data)
    assert set(data["behavioralSignals"]) == {"typingSpeed", "timeSpent", "textLength"}


def test_behavioral_data_falls_back_to_one_second():
    behavior = BehavioralData.from_elapsed("hello", 0)
    assert behavior.time_spent == 0
    assert behavior.typing_speed == 5
    assert behavior.text_length == 5


def test_behavioral_data_speed():
    assert BehavioralData.from_elapsed("abcdefghij", 4).typing_speed == 2.5


def test_default_user():
    user = User.default()
    assert user.streak == 0
    assert user.last_entry_date is None
    assert "lastEntryDate" not in user.model_dump(by_alias=True, exclude_none=True)


def test_timestamps_round_trip_in_js_form():
    stamp = "2026-10-19T08:30:05.123Z"
    assert to_iso(parse_timestamp(stamp)) == stamp


def test_naive_timestamp_is_utc():
    assert parse_timestamp("2026-10-19T08:30:00").utcoffset().total_seconds() == 0


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(2.49) == 2


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_scores_must_be_finite(value):
    with pytest.raises(ValidationError):
        EmotionScores(joy=value)


def test_behavioral_data_must_be_finite():
    with pytest.raises(ValidationError):
        BehavioralData(typing_speed=float("inf"), time_spent=1.0, text_length=3)
