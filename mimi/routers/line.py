"""
LINE webhook endpoint.

Acknowledges every well-formed delivery with 200 "OK" straight away; the
events are processed afterwards as a background task bound to the request.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Header, HTTPException, Request, status
from fastapi.responses import PlainTextResponse
from linebot.v3.exceptions import InvalidSignatureError
from pydantic import ValidationError

from mimi.config import settings
from mimi.schemas.line import LineWebhookBody
from mimi.services.line import verify_signature
from mimi.services.orchestrator import handle_line_events

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/external/line", tags=["line"])


@router.post("/webhook", response_class=PlainTextResponse)
async def line_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    x_line_signature: Optional[str] = Header(None, alias="X-Line-Signature"),
) -> str:
    """
    Receive one LINE webhook delivery.

    The signature is checked only when LINE_CHANNEL_SECRET is configured.
    Per-event failures never change the response.
    """
    try:
        raw_body = (await request.body()).decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Bad Request")

    if settings.line_channel_secret:
        try:
            verify_signature(raw_body, x_line_signature or "", settings.line_channel_secret)
        except InvalidSignatureError:
            logger.warning("Rejected LINE webhook with an invalid signature.")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")

    try:
        payload = LineWebhookBody.model_validate_json(raw_body)
    except ValidationError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Bad Request")

    if payload.events:
        logger.info("LINE webhook: %d event(s) queued", len(payload.events))
        background_tasks.add_task(handle_line_events, payload.events)

    return "OK"
