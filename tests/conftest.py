"""Shared fixtures: in-memory app, store with a fixed clock, mocked OpenRouter."""

import json
import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("DATABASE_URL", "sqlite://")

import httpx
import pytest

from app import create_app
from llm_service import OpenRouterClient
from models import KeyValueStore
from schemas import BehavioralData, EmotionScores, JournalEntry, to_iso
from storage import JournalStore

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def make_entry(emotion="joy", intensity=5, when=None, text="A day.", entry_id=None, **scores):
    """Entry whose dominant emotion is `emotion` (score 0.8, others 0.1 unless given)."""
    values = {name: 0.1 for name in ("joy", "sadness", "anger", "fear", "calm", "surprise")}
    values[emotion] = 0.8
    values.update(scores)
    emotions = EmotionScores(**values)
    when = when or NOW
    return JournalEntry(
        id=entry_id or f"entry-{to_iso(when)}-{emotion}",
        user_id="user-1",
        text=text,
        timestamp=to_iso(when),
        emotions=emotions,
        dominant_emotion=emotions.dominant(),
        intensity=intensity,
        confidence=80,
        behavior_confidence=75,
        user_rating=3,
        behavioral_signals=BehavioralData.from_elapsed(text, 12.5),
    )


def days_ago(n):
    return NOW - timedelta(days=n)


def completion(content):
    """OpenRouter chat-completion body wrapping `content`."""
    if not isinstance(content, str):
        content = json.dumps(content)
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class FakeOpenRouter:
    """Queue of canned replies served through httpx.MockTransport."""

    def __init__(self):
        self.replies = []
        self.requests = []

    def reply(self, content, status=200):
        self.replies.append((status, content))

    def handler(self, request):
        self.requests.append(json.loads(request.content))
        status, content = self.replies.pop(0) if self.replies else (503, None)
        if status != 200:
            return httpx.Response(status, text="upstream unavailable")
        return httpx.Response(200, json=completion(content))

    def last_prompt(self):
        return self.requests[-1]["messages"][-1]["content"]


@pytest.fixture
def fake_openrouter():
    return FakeOpenRouter()


@pytest.fixture
def llm(fake_openrouter):
    return OpenRouterClient(
        api_key="test-key",
        model="test-model",
        transport=httpx.MockTransport(fake_openrouter.handler),
    )


@pytest.fixture
def app(llm):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "LLM_CLIENT": llm,
    })
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    with app.app_context():
        yield JournalStore(KeyValueStore(), clock=lambda: NOW)
