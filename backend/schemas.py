"""Data model for journal entries, the user profile and insights.

JSON field names are camelCase so stored documents keep the layout the web
client reads; Python attributes are snake_case.
"""

import math
import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

# Canonical order: ties in argmax resolve to the earliest name here
EMOTIONS = ("joy", "sadness", "anger", "fear", "calm", "surprise")

DEFAULT_USER_ID = "user-1"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


# === Timestamps ===
def to_iso(moment: datetime) -> str:
    """Format like JavaScript's Date.toISOString(): UTC, milliseconds, 'Z'."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def utc_now_iso() -> str:
    return to_iso(datetime.now(timezone.utc))


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 string; naive values are taken as UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; scores are rounded half up
    return int(math.floor(value + 0.5))


class CamelModel(BaseModel):
    # NaN/inf can't be stored as JSON numbers; reject them at every boundary
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False)


# === Entry ===
class EmotionScores(CamelModel):
    model_config = ConfigDict(frozen=True)

    joy: float = 0.0
    sadness: float = 0.0
    anger: float = 0.0
    fear: float = 0.0
    calm: float = 0.0
    surprise: float = 0.0

    def items(self):
        return [(name, getattr(self, name)) for name in EMOTIONS]

    def dominant(self) -> str:
        """Category with the highest score; first in canonical order wins ties."""
        dominant, best = EMOTIONS[0], -math.inf
        for name, score in self.items():
            if score > best:
                dominant, best = name, score
        return dominant


class BehavioralData(CamelModel):
    model_config = ConfigDict(frozen=True)

    typing_speed: float  # characters per second
    time_spent: float  # seconds
    text_length: int

    @classmethod
    def from_elapsed(cls, text: str, elapsed_seconds: float | None) -> "BehavioralData":
        time_spent = max(elapsed_seconds or 0.0, 0.0)
        return cls(
            typing_speed=len(text) / (time_spent or 1),
            time_spent=time_spent,
            text_length=len(text),
        )


class JournalEntry(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    text: str
    timestamp: str
    emotions: EmotionScores
    dominant_emotion: str
    intensity: int = Field(ge=0, le=10)
    confidence: int = Field(ge=0, le=100)
    behavior_confidence: int = Field(ge=0, le=100)
    user_rating: int = Field(ge=1, le=5)
    behavioral_signals: BehavioralData

    @field_validator("timestamp")
    @classmethod
    def _timestamp_is_iso(cls, value):
        parse_timestamp(value)
        return value

    @model_validator(mode="after")
    def _dominant_matches_scores(self):
        expected = self.emotions.dominant()
        if self.dominant_emotion != expected:
            raise ValueError(
                f"dominantEmotion '{self.dominant_emotion}' is not the top score ('{expected}')"
            )
        return self

    @classmethod
    def create(
        cls,
        text: str,
        emotions: EmotionScores,
        intensity: float,
        confidence: float,
        behavior_confidence: float,
        user_rating: int,
        behavioral_signals: BehavioralData,
        user_id: str = DEFAULT_USER_ID,
        timestamp: str | None = None,
    ) -> "JournalEntry":
        """Build a new entry from classifier output (intensity on a 0-1 scale)."""
        return cls(
            id=str(uuid.uuid4()),
            user_id=user_id,
            text=text,
            timestamp=timestamp or utc_now_iso(),
            emotions=emotions,
            dominant_emotion=emotions.dominant(),
            intensity=min(max(round_half_up(intensity * 10), 0), 10),
            confidence=min(max(round_half_up(confidence), 0), 100),
            behavior_confidence=min(max(round_half_up(behavior_confidence), 0), 100),
            user_rating=user_rating,
            behavioral_signals=behavioral_signals,
        )

    @property
    def created_at(self) -> datetime:
        return parse_timestamp(self.timestamp)


# === User ===
class User(CamelModel):
    id: str
    email: str
    name: str
    streak: int = Field(default=0, ge=0)
    last_entry_date: str | None = None

    @classmethod
    def default(cls) -> "User":
        return cls(
            id=DEFAULT_USER_ID,
            email="demo@example.com",
            name="Drift Explorer",
            streak=0,
        )


# === Insights ===
class AIInsight(CamelModel):
    summary: str
    trends: list[str]
    tips: list[str]
    drift_prediction: str
    stability_indicator: float  # 0-100, computed locally
    positivity_ratio: float  # 0-100, computed locally


# === LLM response contracts ===
class EmotionAnalysisPayload(CamelModel):
    joy: float
    sadness: float
    anger: float
    fear: float
    calm: float
    surprise: float
    intensity: float
    confidence: float
    behavior_confidence: float


class InsightPayload(CamelModel):
    summary: str
    trends: list[str]
    tips: list[str]
    drift_prediction: str


# === API requests ===
class JournalSubmission(CamelModel):
    text: str
    user_rating: int = Field(default=3, ge=1, le=5)
    time_spent: float | None = Field(default=None, ge=0)  # seconds since first keystroke


class ThemeUpdate(BaseModel):
    theme: Theme


class PurgeRequest(BaseModel):
    confirm: bool = False
