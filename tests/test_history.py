"""
Tests for the conversation history store
"""

from datetime import datetime, timedelta, timezone

import pytest

from mimi.services.history import (
    DIRECTION_BOT,
    DIRECTION_USER,
    ChatTurn,
    append_turn,
    recent_turns,
    to_chat_messages,
)
from mimi.services.users import resolve_or_create


@pytest.mark.asyncio
async def test_window_excludes_old_turns(db_session):
    user_id = await resolve_or_create(db_session, "U-window")
    now = datetime.now(timezone.utc)

    await append_turn(db_session, user_id, DIRECTION_USER, "too old", created_at=now - timedelta(hours=37))
    await append_turn(db_session, user_id, DIRECTION_USER, "recent question", created_at=now - timedelta(hours=35))
    await append_turn(db_session, user_id, DIRECTION_BOT, "recent answer", created_at=now - timedelta(hours=35))

    turns = await recent_turns(db_session, user_id, 36)

    assert [t.text for t in turns] == ["recent question", "recent answer"]
    assert [t.direction for t in turns] == [DIRECTION_USER, DIRECTION_BOT]


@pytest.mark.asyncio
async def test_window_applies_to_offset_timestamps(db_session):
    user_id = await resolve_or_create(db_session, "U-offset")
    taipei = timezone(timedelta(hours=8))
    now = datetime.now(taipei)

    await append_turn(db_session, user_id, DIRECTION_USER, "too old", created_at=now - timedelta(hours=37))
    await append_turn(db_session, user_id, DIRECTION_USER, "recent", created_at=now - timedelta(hours=1))

    turns = await recent_turns(db_session, user_id, 36)
    assert [t.text for t in turns] == ["recent"]


@pytest.mark.asyncio
async def test_turns_are_ordered_by_insertion_not_timestamp(db_session):
    user_id = await resolve_or_create(db_session, "U-order")
    now = datetime.now(timezone.utc)

    await append_turn(db_session, user_id, DIRECTION_USER, "first", created_at=now - timedelta(hours=1))
    await append_turn(db_session, user_id, DIRECTION_BOT, "second", created_at=now - timedelta(hours=2))

    turns = await recent_turns(db_session, user_id, 36)
    assert [t.text for t in turns] == ["first", "second"]


@pytest.mark.asyncio
async def test_history_is_per_user(db_session):
    alice = await resolve_or_create(db_session, "U-alice")
    bob = await resolve_or_create(db_session, "U-bob")
    await append_turn(db_session, alice, DIRECTION_USER, "hi from alice")

    assert await recent_turns(db_session, bob, 36) == []
    assert len(await recent_turns(db_session, alice, 36)) == 1


@pytest.mark.asyncio
async def test_unknown_direction_is_rejected(db_session):
    user_id = await resolve_or_create(db_session, "U-dir")
    with pytest.raises(ValueError):
        await append_turn(db_session, user_id, "system", "nope")


def test_to_chat_messages_maps_roles():
    messages = to_chat_messages([
        ChatTurn(direction=DIRECTION_USER, text="q"),
        ChatTurn(direction=DIRECTION_BOT, text="a"),
    ])
    assert messages == [
        {"role": "user", "content": "q"},
        {"role": "assistant", "content": "a"},
    ]
