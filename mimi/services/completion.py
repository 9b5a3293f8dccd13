"""
Completion gateway — single-shot calls to an OpenAI-compatible chat completions API.

Text chat   : OPENAI_CHAT_MODEL   (default: gpt-4.1-mini) → reply + intent category
Meal photos : OPENAI_VISION_MODEL (default: gpt-4o-mini)  → structured nutrition fields

Text classification never fails on model misbehaviour: malformed output falls
back to a fixed reply and the "general" category. Meal analysis is strict:
unparsable output raises CompletionError so the caller can ask for a new photo.
Transport and configuration failures always raise.
"""

from __future__ import annotations

import base64
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Optional

from openai import APIError, APIStatusError, AsyncOpenAI

from mimi.config import settings
from mimi.utils.prompts import (
    EMPTY_REPLY_FALLBACK,
    FALLBACK_REPLY,
    VALID_CATEGORIES,
    build_meal_analysis_messages,
)

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "general"

_MEAL_NUMERIC_FIELDS = (
    "carb_g",
    "sugar_g",
    "protein_g",
    "fat_g",
    "veggies_servings",
    "fruits_servings",
    "calories_kcal",
)


class CompletionError(Exception):
    """Raised when the completion service cannot produce a usable answer."""


class CompletionConfigError(CompletionError):
    """Raised when the completion service credentials are not configured."""


@dataclass(frozen=True)
class ChatResult:
    reply: str
    category: str


@dataclass
class MealAnalysis:
    meal_type: str = ""
    food_name: str = ""
    description: str = ""
    carb_g: Optional[float] = None
    sugar_g: Optional[float] = None
    protein_g: Optional[float] = None
    fat_g: Optional[float] = None
    veggies_servings: Optional[float] = None
    fruits_servings: Optional[float] = None
    calories_kcal: Optional[float] = None
    advice: Optional[str] = None
    raw_json: dict[str, Any] = field(default_factory=dict)


# ── Normalisation helpers ────────────────────────────────────────────────────


def ensure_string_content(content: Any) -> str:
    """
    Normalise a message `content` value to a string.

    Accepts a string, a list of parts (strings, or objects carrying a string
    `text` or `content`), or None. Always returns a string; parts without
    text contribute nothing.
    """
    if isinstance(content, str):
        return content
    if content is None:
        return ""
    if isinstance(content, list):
        pieces: list[str] = []
        for part in content:
            if isinstance(part, str):
                pieces.append(part)
            elif isinstance(part, dict):
                if isinstance(part.get("text"), str):
                    pieces.append(part["text"])
                elif isinstance(part.get("content"), str):
                    pieces.append(part["content"])
        return "".join(pieces)
    return str(content)


def safe_number(value: Any) -> Optional[float]:
    """Return `value` as a finite float, or None if it is missing or not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _strip_fences(text: str) -> str:
    """Remove markdown code fences (```json ... ```) from a string."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        cleaned = "\n".join(
            lines[1:-1] if lines[-1].strip().startswith("```") else lines[1:]
        )
    return cleaned.strip()


def _optional_text(value: Any) -> str:
    return value if isinstance(value, str) else ("" if value is None else str(value))


# ── Parsers ──────────────────────────────────────────────────────────────────


def parse_classification(content: str) -> ChatResult:
    """
    Turn raw model output into a reply + category. Never raises.

    Parse failure → fixed apology + "general".
    Unknown category → "general". Empty reply → the raw output text.
    """
    try:
        parsed = json.loads(_strip_fences(content))
    except (json.JSONDecodeError, TypeError) as exc:
        logger.warning("Classification output is not JSON (%s): %.200r", exc, content)
        return ChatResult(reply=FALLBACK_REPLY, category=DEFAULT_CATEGORY)

    if not isinstance(parsed, dict):
        logger.warning("Classification output is not a JSON object: %.200r", content)
        return ChatResult(reply=FALLBACK_REPLY, category=DEFAULT_CATEGORY)

    category = parsed.get("category")
    if category not in VALID_CATEGORIES:
        category = DEFAULT_CATEGORY

    reply = parsed.get("reply")
    if not isinstance(reply, str) or not reply.strip():
        reply = content or EMPTY_REPLY_FALLBACK

    return ChatResult(reply=reply, category=category)


def parse_meal_analysis(content: str) -> MealAnalysis:
    """Parse the meal JSON; numeric fields are coerced independently. Raises CompletionError."""
    cleaned = _strip_fences(content)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise CompletionError(f"Failed to parse meal JSON: {cleaned[:200]}") from exc

    if not isinstance(parsed, dict):
        raise CompletionError(f"Meal JSON is not an object: {cleaned[:200]}")

    advice = parsed.get("advice")
    return MealAnalysis(
        meal_type=_optional_text(parsed.get("meal_type")),
        food_name=_optional_text(parsed.get("food_name")),
        description=_optional_text(parsed.get("description")),
        advice=advice.strip() if isinstance(advice, str) and advice.strip() else None,
        raw_json=parsed,
        **{name: safe_number(parsed.get(name)) for name in _MEAL_NUMERIC_FIELDS},
    )


# ── Transport ────────────────────────────────────────────────────────────────


def _client() -> AsyncOpenAI:
    return AsyncOpenAI(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout=settings.openai_timeout_seconds,
    )


async def _create_chat_completion(**params: Any) -> str:
    """
    Run one chat completion and return choices[0].message.content as a string.
    Raises CompletionConfigError / CompletionError.
    """
    if not settings.openai_api_key:
        raise CompletionConfigError("OPENAI_API_KEY is not configured")

    try:
        response = await _client().chat.completions.create(**params)
    except APIStatusError as exc:
        raise CompletionError(
            f"Completion API error {exc.status_code}: {str(exc.message)[:500]}"
        ) from exc
    except APIError as exc:
        raise CompletionError(f"Completion request failed: {exc}") from exc

    choices = getattr(response, "choices", None)
    if not choices or getattr(choices[0], "message", None) is None:
        raise CompletionError("Invalid completion response: no choices")

    return ensure_string_content(choices[0].message.content)


# ── Public operations ────────────────────────────────────────────────────────


async def classify(messages: list[dict[str, Any]]) -> ChatResult:
    """Generate the coach's reply and the intent category for the last user message."""
    content = await _create_chat_completion(
        model=settings.openai_chat_model,
        messages=messages,
        max_tokens=400,
        temperature=0.7,
        response_format={"type": "json_object"},
    )
    logger.debug("Classification raw output: %s", content)
    return parse_classification(content)


async def analyze_meal(image_bytes: bytes) -> MealAnalysis:
    """Estimate meal type and nutrition from a photo. Raises CompletionError on any failure."""
    data_uri = "data:image/jpeg;base64," + base64.b64encode(image_bytes).decode("ascii")
    logger.debug(
        "Meal analysis request (%s, %d image bytes)",
        settings.openai_vision_model,
        len(image_bytes),
    )
    content = await _create_chat_completion(
        model=settings.openai_vision_model,
        messages=build_meal_analysis_messages(data_uri),
        max_tokens=400,
        response_format={"type": "json_object"},
    )
    return parse_meal_analysis(content)
