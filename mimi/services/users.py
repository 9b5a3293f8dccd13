"""User directory — resolves a LINE identity to the internal numeric user id."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import bindparam, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mimi.database import UTCDateTime

logger = logging.getLogger(__name__)

_SELECT_USER_ID = text("SELECT id FROM users WHERE line_user_id = :line_user_id")

_INSERT_USER = text("""
    INSERT INTO users (line_user_id, created_at, updated_at)
    VALUES (:line_user_id, :now, :now)
""").bindparams(bindparam("now", type_=UTCDateTime))


class UserIntegrityError(Exception):
    """Raised when a user row cannot be found right after it was created."""


async def _find_user_id(db: AsyncSession, line_user_id: str) -> int | None:
    result = await db.execute(_SELECT_USER_ID, {"line_user_id": line_user_id})
    row = result.fetchone()
    return int(row.id) if row else None


async def resolve_or_create(db: AsyncSession, line_user_id: str) -> int:
    """
    Return the internal id for `line_user_id`, creating the user on first contact.

    Idempotent: a second call with the same identity returns the same id.
    A unique-constraint conflict from a concurrent first contact is treated as
    "already exists" and resolved by re-reading.
    """
    if not line_user_id:
        raise ValueError("line_user_id must be a non-empty string")

    existing = await _find_user_id(db, line_user_id)
    if existing is not None:
        return existing

    try:
        await db.execute(
            _INSERT_USER,
            {"line_user_id": line_user_id, "now": datetime.now(timezone.utc)},
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("User %s was created concurrently, re-reading.", line_user_id)

    created = await _find_user_id(db, line_user_id)
    if created is None:
        raise UserIntegrityError(f"Failed to create user for {line_user_id!r}")

    logger.debug("Created user %s for LINE id %s", created, line_user_id)
    return created
