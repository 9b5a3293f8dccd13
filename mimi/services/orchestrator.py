"""
Orchestrator — consent-gated conversation flow for every inbound LINE event.

Text message:
  resolve user → consent gate → 36 h history → classify → persist 2 turns → reply
Image message:
  resolve user → consent gate → fetch content → analyse meal → persist meal log → reply
Anything else:
  fixed "not supported yet" reply

A consent-gated event gets the consent-request reply and touches nothing else.
handle_line_event is the final error boundary: failures are recorded via the
error sink and turned into one best-effort fallback reply. It never raises.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from mimi.config import settings
from mimi.database import AsyncSessionLocal
from mimi.schemas.line import LineEvent
from mimi.services.completion import ChatResult, CompletionError, analyze_meal, classify
from mimi.services.error_sink import log_error
from mimi.services.eula import has_agreed_latest
from mimi.services.history import (
    DIRECTION_BOT,
    DIRECTION_USER,
    append_turn,
    recent_turns,
    to_chat_messages,
)
from mimi.services.line import LineApiError, get_message_content, reply_text
from mimi.services.meals import save_meal_log
from mimi.services.users import resolve_or_create
from mimi.utils.prompts import (
    FALLBACK_REPLY,
    IMAGE_FETCH_RETRY_REPLY,
    IMAGE_RESEND_REPLY,
    MEAL_SAVED_REPLY,
    UNSUPPORTED_MESSAGE_REPLY,
    build_chat_messages,
    build_consent_request,
)

logger = logging.getLogger(__name__)

_SUPPORTED_MESSAGE_TYPES = {"text", "image"}


# ── Shared conversation step (LINE text + Make.com) ──────────────────────────

async def converse(
    db: AsyncSession,
    user_id: int,
    user_prompt: str,
    session_id: Optional[str] = None,
) -> ChatResult:
    """
    Context → generate → persist for one utterance of an already-consented user.

    The user turn (with its category) is written before the bot turn.
    Nothing is written if the completion call fails.
    """
    turns = await recent_turns(db, user_id, settings.history_window_hours)
    messages = build_chat_messages(to_chat_messages(turns), user_prompt)

    result = await classify(messages)

    await append_turn(
        db, user_id, DIRECTION_USER, user_prompt,
        intent_category=result.category, session_id=session_id,
    )
    await append_turn(db, user_id, DIRECTION_BOT, result.reply, session_id=session_id)
    logger.debug(
        "Conversation turn stored for user %s (history=%d, category=%s)",
        user_id, len(turns), result.category,
    )
    return result


# ── Image flow ────────────────────────────────────────────────────────────────

async def _handle_image(db: AsyncSession, user_id: int, event: LineEvent) -> str:
    """Analyse a meal photo and store it. Returns the reply text."""
    message_id = event.message.id if event.message else ""

    try:
        image_bytes = await get_message_content(message_id)
    except LineApiError as exc:
        await log_error("line_image_fetch", exc, {"event": event.excerpt()})
        return IMAGE_FETCH_RETRY_REPLY

    try:
        analysis = await analyze_meal(image_bytes)
    except CompletionError as exc:
        await log_error(
            "line_image_analysis", exc,
            {"event": event.excerpt(), "image_bytes": len(image_bytes)},
        )
        return IMAGE_RESEND_REPLY

    await save_meal_log(db, user_id, analysis)
    return analysis.advice or MEAL_SAVED_REPLY


# ── Event entry points ────────────────────────────────────────────────────────

async def _safe_reply(reply_token: str, text: str) -> None:
    """Best-effort reply; a failure here is logged and swallowed."""
    try:
        await reply_text(reply_token, text)
    except Exception as exc:
        logger.warning("Fallback reply failed: %s", exc)


async def handle_line_event(event: LineEvent) -> None:
    """Process one webhook event end to end. Never raises."""
    if event.type != "message" or event.message is None:
        return

    reply_token = event.reply_token
    sender = event.sender_id
    if not reply_token or not sender:
        logger.debug("Skipping event without reply token or sender: %s", event.excerpt())
        return

    message_type = event.message.type
    if message_type not in _SUPPORTED_MESSAGE_TYPES:
        await _safe_reply(reply_token, UNSUPPORTED_MESSAGE_REPLY)
        return

    user_prompt = event.message.text or ""
    if message_type == "text" and not user_prompt.strip():
        return

    try:
        async with AsyncSessionLocal() as db:
            user_id = await resolve_or_create(db, sender)

            consent = await has_agreed_latest(db, user_id)
            if not consent.agreed and consent.latest is not None:
                await reply_text(reply_token, build_consent_request(consent.latest.url))
                return

            if message_type == "text":
                reply = (await converse(db, user_id, user_prompt)).reply
            else:
                reply = await _handle_image(db, user_id, event)

        await reply_text(reply_token, reply)

    except Exception as exc:
        await log_error("line_webhook", exc, {"event": event.excerpt()})
        await _safe_reply(reply_token, FALLBACK_REPLY)


async def handle_line_events(events: list[LineEvent]) -> None:
    """Run every event of one webhook delivery concurrently."""
    if not events:
        return
    await asyncio.gather(*(handle_line_event(e) for e in events))
