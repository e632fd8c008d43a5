# llm_service.py
import json
import logging
import threading
from dataclasses import dataclass

import httpx
from pydantic import ValidationError

from aggregation import emotion_change_stability, positivity_ratio
from schemas import AIInsight, EmotionAnalysisPayload, EmotionScores, InsightPayload

logger = logging.getLogger(__name__)

API_URL = "https://openrouter.ai/api/v1/chat/completions"

# Only the most recent entries are sent for insights
INSIGHT_HISTORY_LIMIT = 10

FALLBACK_SUMMARY = "Analysis unavailable."
FALLBACK_PREDICTION = "Stay mindful of your daily routine."

SYSTEM_PROMPT = (
    "You are a warm, trauma-informed emotional wellbeing analyst. "
    "Never diagnose. Always answer with a single JSON object and nothing else."
)


class LLMError(Exception):
    """The completion could not be obtained or read."""


@dataclass
class EmotionAnalysis:
    scores: EmotionScores
    intensity: float  # 0-1, scaled to 0-10 when the entry is built
    confidence: float
    behavior_confidence: float
    degraded: bool = False

    @classmethod
    def zeroed(cls):
        return cls(EmotionScores(), 0.0, 0.0, 0.0, degraded=True)


@dataclass
class InsightResult:
    insight: AIInsight
    degraded: bool = False


def _emotion_prompt(text, behavior):
    return (
        "Analyze the following journal entry for emotional content and behavior.\n\n"
        "User Behavior Signals:\n"
        f"- Typing Speed: {behavior.typing_speed:.2f} chars/sec\n"
        f"- Time Spent: {behavior.time_spent:.1f} seconds\n"
        f"- Text Length: {behavior.text_length} chars\n\n"
        f'Entry Text: "{text}"\n\n'
        "Instructions:\n"
        "1. Provide emotional scores (0-1) for: joy, sadness, anger, fear, calm, surprise.\n"
        "2. Provide an overall emotional intensity score (0-1).\n"
        "3. Provide a base confidence score (0-100) based purely on text clarity.\n"
        "4. Provide an 'enhanced' behaviorConfidence score (0-100). Slower typing or "
        "longer time spent on short text might indicate hesitation or deep reflection, "
        "increasing confidence in complex emotions. High speed might indicate raw, "
        "impulsive emotion.\n\n"
        'Respond with JSON keys: "joy", "sadness", "anger", "fear", "calm", "surprise", '
        '"intensity", "confidence", "behaviorConfidence".'
    )


def _history_block(entries):
    """Newest-first `[timestamp] text` lines for the insight prompt."""
    if not entries:
        return "No prior journal entries."
    return "\n".join(f"[{e.timestamp}] {e.text}" for e in entries)


def _insight_prompt(entries, stability, positivity):
    return (
        "Analyze these recent journal entries and provide mental health insights.\n"
        f"Current Stats: Stability {stability:.0f}%, Positivity {positivity:.0f}%\n"
        f"History:\n{_history_block(entries)}\n\n"
        "Output JSON with:\n"
        '- "summary": 1-2 sentences of overall mood.\n'
        '- "trends": list of 3 identified emotional patterns.\n'
        '- "tips": list of 3 personalized wellness tips.\n'
        '- "driftPrediction": prediction of likely mood drift for the next few days.'
    )


def _strip_fences(content):
    # Some models wrap JSON in ```json fences even in JSON mode
    content = content.strip()
    if content.startswith("```"):
        content = content.split("\n", 1)[1] if "\n" in content else ""
        content = content.rsplit("```", 1)[0]
    return content.strip()


class OpenRouterClient:
    """Emotion classifier and insight generator backed by OpenRouter.

    One request per call and no retries. Every failure is logged and turned
    into a degraded result instead of an exception.
    """

    def __init__(self, api_key, model, url=API_URL, app_url="", timeout=30.0, transport=None):
        self.api_key = api_key
        self.model = model
        self.url = url
        self.app_url = app_url
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_config(cls, config, transport=None):
        return cls(
            api_key=config.get("OPENROUTER_API_KEY"),
            model=config.get("OPENROUTER_MODEL"),
            url=config.get("OPENROUTER_URL", API_URL),
            app_url=config.get("PUBLIC_APP_URL", ""),
            timeout=config.get("LLM_TIMEOUT", 30.0),
            transport=transport,
        )

    def _complete_json(self, user_prompt, max_tokens):
        """POST one chat completion and return the decoded JSON object."""
        if not self.api_key:
            raise LLMError("OPENROUTER_API_KEY is not set")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            # Recommended by OpenRouter for attribution
            "HTTP-Referer": self.app_url,
            "X-Title": "Drift Journal",
        }
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
            "response_format": {"type": "json_object"},
            "max_tokens": max_tokens,
            "temperature": 0.3,
        }

        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            resp = client.post(self.url, headers=headers, json=body)
            logger.debug("LLM status: %s", resp.status_code)
            resp.raise_for_status()
            data = resp.json()

        try:
            content = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise LLMError(f"unexpected completion shape: {e!r}") from e

        parsed = json.loads(_strip_fences(content))
        if not isinstance(parsed, dict):
            raise LLMError("completion is not a JSON object")
        return parsed

    def analyze_emotion(self, text, behavior):
        try:
            payload = EmotionAnalysisPayload.model_validate(
                self._complete_json(_emotion_prompt(text, behavior), max_tokens=300)
            )
        except httpx.HTTPStatusError as e:
            logger.warning("Emotion analysis HTTP %s: %s", e.response.status_code, e.response.text[:300])
        except (httpx.HTTPError, LLMError, ValueError) as e:
            # ValueError covers bad JSON and pydantic ValidationError
            logger.warning("Failed to parse emotion analysis: %s", e)
        else:
            return EmotionAnalysis(
                scores=EmotionScores(
                    joy=payload.joy,
                    sadness=payload.sadness,
                    anger=payload.anger,
                    fear=payload.fear,
                    calm=payload.calm,
                    surprise=payload.surprise,
                ),
                intensity=payload.intensity,
                confidence=payload.confidence,
                behavior_confidence=payload.behavior_confidence,
            )

        return EmotionAnalysis.zeroed()

    def generate_insights(self, entries):
        """Insights over the ten newest entries.

        Stability and positivity are computed here over the full collection and
        always win over anything the model returns.
        """
        stability = emotion_change_stability(entries)
        positivity = positivity_ratio(entries)
        recent = list(entries[:INSIGHT_HISTORY_LIMIT])

        try:
            payload = InsightPayload.model_validate(
                self._complete_json(_insight_prompt(recent, stability, positivity), max_tokens=600)
            )
        except httpx.HTTPStatusError as e:
            logger.warning("Insight generation HTTP %s: %s", e.response.status_code, e.response.text[:300])
        except (httpx.HTTPError, LLMError, ValueError) as e:
            logger.warning("Failed to parse insights: %s", e)
        else:
            return InsightResult(
                AIInsight(
                    **payload.model_dump(),
                    stability_indicator=stability,
                    positivity_ratio=positivity,
                )
            )

        return InsightResult(
            AIInsight(
                summary=FALLBACK_SUMMARY,
                trends=[],
                tips=[],
                drift_prediction=FALLBACK_PREDICTION,
                stability_indicator=stability,
                positivity_ratio=positivity,
            ),
            degraded=True,
        )


class InsightBoard:
    """Holds the insight shown to the user.

    Each generation takes a token from begin(); publish() only keeps a result
    whose token is the newest issued, so a slow earlier request can't
    overwrite a later one.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._issued = 0
        self._latest = None

    def begin(self):
        with self._lock:
            self._issued += 1
            return self._issued

    def publish(self, token, insight):
        with self._lock:
            if token != self._issued:
                logger.info("Discarding stale insight (token %s, latest %s)", token, self._issued)
                return False
            self._latest = insight
            return True

    @property
    def latest(self):
        return self._latest

    def reset(self):
        with self._lock:
            self._latest = None
