"""
LINE Messaging API client — webhook signature check, reply, and content download.

Both outbound calls are bearer-authorised with LINE_CHANNEL_ACCESS_TOKEN and
raise LineApiError (status + body) on any non-2xx response.
"""

from __future__ import annotations

import asyncio
import logging

from linebot.v3.exceptions import InvalidSignatureError
from linebot.v3.messaging import (
    AsyncApiClient,
    AsyncMessagingApi,
    AsyncMessagingApiBlob,
    Configuration,
    ReplyMessageRequest,
    TextMessage,
)
from linebot.v3.messaging.exceptions import ApiException
from linebot.v3.webhook import SignatureValidator

from mimi.config import settings

logger = logging.getLogger(__name__)

# LINE rejects text messages longer than this
MAX_TEXT_LENGTH = 5000


class LineConfigError(Exception):
    """Raised when the channel access token is not configured."""


class LineApiError(Exception):
    """Raised when the LINE API answers with a non-success status."""

    def __init__(self, status_code: int, body: str, action: str = "request") -> None:
        super().__init__(f"LINE {action} error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


def verify_signature(body: str, signature: str, channel_secret: str) -> None:
    """Check X-Line-Signature against the raw body. Raises InvalidSignatureError."""
    if not signature or not SignatureValidator(channel_secret).validate(body, signature):
        raise InvalidSignatureError("Invalid signature")


def _configuration() -> Configuration:
    if not settings.line_channel_access_token:
        raise LineConfigError("LINE_CHANNEL_ACCESS_TOKEN is not configured")
    return Configuration(
        host=settings.line_api_base,
        access_token=settings.line_channel_access_token,
    )


def _api_error(exc: ApiException, action: str) -> LineApiError:
    return LineApiError(exc.status or 0, str(exc.body or exc.reason or ""), action=action)


async def reply_text(reply_token: str, text: str) -> None:
    """Send a single text message in reply to `reply_token`."""
    request = ReplyMessageRequest(
        reply_token=reply_token,
        messages=[TextMessage(text=text[:MAX_TEXT_LENGTH])],
    )
    api_client = AsyncApiClient(_configuration())
    try:
        await AsyncMessagingApi(api_client).reply_message(request)
    except ApiException as exc:
        raise _api_error(exc, "reply") from exc
    finally:
        await api_client.close()


async def get_message_content(message_id: str) -> bytes:
    """Download the binary content (e.g. an image) of a user message."""
    api_client = AsyncApiClient(_configuration())
    try:
        content = await AsyncMessagingApiBlob(api_client).get_message_content(message_id)
    except ApiException as exc:
        raise _api_error(exc, "content") from exc
    except asyncio.TimeoutError as exc:
        raise LineApiError(0, "timed out", action="content") from exc
    finally:
        await api_client.close()

    logger.debug("Fetched %d bytes of content for message %s", len(content), message_id)
    return bytes(content)
