"""
Error sink — best-effort diagnostic records in the error_logs table.

Writes in its own session so a broken request session cannot stop the record.
Never raises: a logging failure must not mask the error being logged.
"""

from __future__ import annotations

import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import bindparam, text

from mimi.database import AsyncSessionLocal, UTCDateTime

logger = logging.getLogger(__name__)

_INSERT_ERROR = text("""
    INSERT INTO error_logs (source, message, stack, payload, created_at)
    VALUES (:source, :message, :stack, :payload, :created_at)
""").bindparams(bindparam("created_at", type_=UTCDateTime))


def _describe(error: Any) -> tuple[str, Optional[str]]:
    """Return (message, stack) for an exception, a string, or anything JSON-able."""
    if isinstance(error, BaseException):
        stack = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
        return str(error) or type(error).__name__, stack
    if isinstance(error, str):
        return error, None
    if error is None:
        return "", None
    try:
        return json.dumps(error, ensure_ascii=False, default=str), None
    except (TypeError, ValueError):
        return repr(error), None


async def log_error(
    source: str,
    error: Any,
    payload: Optional[dict[str, Any]] = None,
) -> None:
    """Record an error under `source` with optional context payload. Never raises."""
    try:
        message, stack = _describe(error)
        payload_json = (
            json.dumps(payload, ensure_ascii=False, default=str)
            if payload is not None
            else None
        )
        logger.error("[%s] %s", source, message)

        async with AsyncSessionLocal() as db:
            await db.execute(
                _INSERT_ERROR,
                {
                    "source": source,
                    "message": message,
                    "stack": stack,
                    "payload": payload_json,
                    "created_at": datetime.now(timezone.utc),
                },
            )
            await db.commit()
    except Exception as exc:
        logger.error("Failed to record error from %s: %s", source, exc)
