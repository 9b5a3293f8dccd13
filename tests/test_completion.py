"""
Tests for the completion gateway: output parsing and the completion API exchange
"""

import json

import httpx
import pytest
from openai import AsyncOpenAI
from unittest.mock import patch

from mimi.config import settings
from mimi.services.completion import (
    CompletionConfigError,
    CompletionError,
    analyze_meal,
    classify,
    ensure_string_content,
    parse_classification,
    parse_meal_analysis,
    safe_number,
)
from mimi.utils.prompts import FALLBACK_REPLY


def _mock_client(handler):
    """Build a client factory that routes every request to `handler`."""

    def factory():
        return AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            max_retries=0,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )

    return factory


def _completion_body(content):
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1735689600,
        "model": "gpt-test",
        "choices": [{
            "index": 0,
            "finish_reason": "stop",
            "message": {"role": "assistant", "content": content},
        }],
    }


# ============ Parsing ============

def test_non_json_falls_back_to_general():
    result = parse_classification("not json")
    assert result.category == "general"
    assert result.reply == FALLBACK_REPLY


def test_unknown_category_becomes_general_and_keeps_reply():
    result = parse_classification('{"category": "bogus", "reply": "hello"}')
    assert result.category == "general"
    assert result.reply == "hello"


def test_valid_classification_is_kept():
    result = parse_classification('```json\n{"category": "diet", "reply": "少喝含糖飲料"}\n```')
    assert result.category == "diet"
    assert result.reply == "少喝含糖飲料"


def test_empty_reply_uses_raw_output():
    raw = '{"category": "emotion", "reply": ""}'
    result = parse_classification(raw)
    assert result.category == "emotion"
    assert result.reply == raw


def test_json_array_falls_back():
    result = parse_classification('["diet"]')
    assert result.category == "general"
    assert result.reply == FALLBACK_REPLY


def test_numeric_fields_are_coerced_independently():
    analysis = parse_meal_analysis(json.dumps({
        "meal_type": "lunch",
        "food_name": "牛肉麵",
        "carb_g": "abc",
        "calories_kcal": 250,
        "protein_g": "18.5",
    }))
    assert analysis.carb_g is None
    assert analysis.calories_kcal == 250
    assert analysis.protein_g == 18.5
    assert analysis.fat_g is None
    assert analysis.food_name == "牛肉麵"
    assert analysis.raw_json["carb_g"] == "abc"


def test_meal_advice_is_optional():
    analysis = parse_meal_analysis('{"food_name": "沙拉", "advice": "  "}')
    assert analysis.advice is None


def test_unparsable_meal_output_raises():
    with pytest.raises(CompletionError):
        parse_meal_analysis("I see a sandwich")


@pytest.mark.parametrize("value", [None, True, "", "abc", float("nan"), float("inf"), [1]])
def test_safe_number_rejects_non_numbers(value):
    assert safe_number(value) is None


def test_ensure_string_content_joins_parts():
    assert ensure_string_content("plain") == "plain"
    assert ensure_string_content(None) == ""
    assert ensure_string_content(["a", {"text": "b"}, {"content": "c"}, {"image": 1}]) == "abc"


# ============ API exchange ============

@pytest.mark.asyncio
async def test_classify_sends_chat_request():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=_completion_body('{"category": "health", "reply": "早點睡"}'))

    messages = [{"role": "user", "content": "最近睡不好"}]
    with patch("mimi.services.completion._client", _mock_client(handler)):
        result = await classify(messages)

    assert result.category == "health"
    assert result.reply == "早點睡"
    assert captured["url"].endswith("/chat/completions")
    assert captured["auth"] == "Bearer sk-test"
    assert captured["body"]["model"] == settings.openai_chat_model
    assert captured["body"]["messages"] == messages
    assert captured["body"]["response_format"] == {"type": "json_object"}


@pytest.mark.asyncio
async def test_non_success_status_raises():
    def handler(request):
        return httpx.Response(429, text="rate limited")

    with patch("mimi.services.completion._client", _mock_client(handler)):
        with pytest.raises(CompletionError, match="429"):
            await classify([{"role": "user", "content": "hi"}])


@pytest.mark.asyncio
async def test_missing_choices_raises():
    def handler(request):
        return httpx.Response(200, json={"id": "x"})

    with patch("mimi.services.completion._client", _mock_client(handler)):
        with pytest.raises(CompletionError):
            await classify([{"role": "user", "content": "hi"}])


@pytest.mark.asyncio
async def test_transport_failure_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with patch("mimi.services.completion._client", _mock_client(handler)):
        with pytest.raises(CompletionError):
            await classify([{"role": "user", "content": "hi"}])


@pytest.mark.asyncio
async def test_missing_api_key_raises_config_error(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", "")
    with pytest.raises(CompletionConfigError):
        await classify([{"role": "user", "content": "hi"}])


@pytest.mark.asyncio
async def test_analyze_meal_sends_image_as_data_uri():
    captured = {}

    def handler(request):
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=_completion_body(json.dumps({
            "meal_type": "dinner",
            "food_name": "雞腿便當",
            "calories_kcal": 780,
            "advice": "下一餐多吃點青菜喔",
        })))

    with patch("mimi.services.completion._client", _mock_client(handler)):
        analysis = await analyze_meal(b"\xff\xd8fake-jpeg")

    body = captured["body"]
    assert body["model"] == settings.openai_vision_model
    parts = body["messages"][0]["content"]
    assert parts[0]["type"] == "text"
    assert parts[1]["image_url"]["url"].startswith("data:image/jpeg;base64,")
    assert analysis.calories_kcal == 780
    assert analysis.advice == "下一餐多吃點青菜喔"
