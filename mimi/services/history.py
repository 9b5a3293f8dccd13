"""Conversation history store — append-only chat_logs plus trailing-window reads."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from mimi.database import UTCDateTime, as_utc

logger = logging.getLogger(__name__)

DIRECTION_USER = "user"
DIRECTION_BOT = "bot"

_SELECT_RECENT = text("""
    SELECT direction, text_content
    FROM chat_logs
    WHERE user_id = :user_id
      AND created_at >= :since
    ORDER BY id ASC
""").bindparams(bindparam("since", type_=UTCDateTime))

_INSERT_TURN = text("""
    INSERT INTO chat_logs
        (user_id, session_id, direction, message_type, text_content,
         created_at, intent_category)
    VALUES
        (:user_id, :session_id, :direction, 'text', :text_content,
         :created_at, :intent_category)
""").bindparams(bindparam("created_at", type_=UTCDateTime))


@dataclass(frozen=True)
class ChatTurn:
    direction: str
    text: str


async def recent_turns(
    db: AsyncSession,
    user_id: int,
    window_hours: int = 36,
) -> list[ChatTurn]:
    """Return the user's turns from the trailing `window_hours`, oldest first by insertion."""
    since = datetime.now(timezone.utc) - timedelta(hours=window_hours)
    result = await db.execute(_SELECT_RECENT, {"user_id": user_id, "since": since})
    return [
        ChatTurn(direction=row.direction, text=row.text_content or "")
        for row in result.fetchall()
    ]


async def append_turn(
    db: AsyncSession,
    user_id: int,
    direction: str,
    text_content: str,
    intent_category: Optional[str] = None,
    session_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> None:
    """Insert one turn and commit it."""
    if direction not in (DIRECTION_USER, DIRECTION_BOT):
        raise ValueError(f"Unknown chat direction: {direction!r}")

    await db.execute(
        _INSERT_TURN,
        {
            "user_id": user_id,
            "session_id": session_id,
            "direction": direction,
            "text_content": text_content,
            "created_at": as_utc(created_at) or datetime.now(timezone.utc),
            "intent_category": intent_category,
        },
    )
    await db.commit()


def to_chat_messages(turns: list[ChatTurn]) -> list[dict[str, str]]:
    """Map stored turns onto completion roles: user → user, bot → assistant."""
    return [
        {
            "role": "user" if t.direction == DIRECTION_USER else "assistant",
            "content": t.text,
        }
        for t in turns
    ]
