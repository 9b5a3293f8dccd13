"""
Make.com chat endpoint — server-to-server, protected by the x-api-key header.
Same consent gate and conversation step as the LINE text flow, answered as JSON.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from mimi.config import settings
from mimi.database import get_db
from mimi.schemas.make import (
    EulaInfo,
    MakeChatEcho,
    MakeChatReply,
    MakeChatRequest,
    MakeConsentRequired,
)
from mimi.services.error_sink import log_error
from mimi.services.eula import has_agreed_latest
from mimi.services.orchestrator import converse
from mimi.services.users import resolve_or_create
from mimi.utils.prompts import build_consent_request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/external/make", tags=["make"])

CHAT_PATH = "/api/external/make/chat"


# ── Auth dependency ──────────────────────────────────────────────────────────


async def verify_make_api_key(
    x_api_key: Optional[str] = Header(None, alias="x-api-key"),
) -> None:
    """Reject the call unless x-api-key matches MAKE_API_KEY (an unset key rejects all)."""
    if not settings.make_api_key or x_api_key != settings.make_api_key:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")


def _json(model: BaseModel) -> JSONResponse:
    return JSONResponse(content=model.model_dump(mode="json", by_alias=True, exclude_none=True))


# ── Endpoint ─────────────────────────────────────────────────────────────────


@router.post("/chat", dependencies=[Depends(verify_make_api_key)])
async def make_chat(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Answer one utterance for `lineId`, or ask for EULA consent first.

    The body is read only after the API key has been accepted.
    """
    try:
        body = MakeChatRequest.model_validate_json(await request.body())
    except ValidationError:
        body = None

    if body is None or not body.line_id or not body.user_prompt:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "error": "Missing required fields: lineId or userPrompt"},
        )

    try:
        user_id = await resolve_or_create(db, body.line_id)

        consent = await has_agreed_latest(db, user_id)
        if not consent.agreed and consent.latest is not None:
            latest = consent.latest
            return _json(
                MakeConsentRequired(
                    eula=EulaInfo(id=latest.id, version=latest.version, url=latest.url),
                    reply_text=build_consent_request(latest.url),
                    echo=MakeChatEcho(
                        line_id=body.line_id,
                        user_prompt=body.user_prompt,
                        source=body.source,
                        metadata=body.metadata,
                    ),
                )
            )

        result = await converse(db, user_id, body.user_prompt)
        logger.info("Make.com chat answered for user %s (%s)", user_id, result.category)

        return _json(
            MakeChatReply(
                reply_text=result.reply,
                intent_category=result.category,
                reply_id=str(uuid.uuid4()),
                source=body.source,
                echo=MakeChatEcho(
                    line_id=body.line_id,
                    user_prompt=body.user_prompt,
                    metadata=body.metadata,
                ),
            )
        )

    except Exception as exc:
        await log_error("make_chat", exc, {"path": CHAT_PATH, "method": "POST"})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": str(exc) or type(exc).__name__},
        )
