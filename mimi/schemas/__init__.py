"""Pydantic schemas package."""

from mimi.schemas.line import LineEvent, LineMessage, LineSource, LineWebhookBody
from mimi.schemas.eula import ConsentRequest, ConsentResponse
from mimi.schemas.make import (
    EulaInfo,
    MakeChatEcho,
    MakeChatReply,
    MakeChatRequest,
    MakeConsentRequired,
)

__all__ = [
    "LineEvent", "LineMessage", "LineSource", "LineWebhookBody",
    "ConsentRequest", "ConsentResponse",
    "EulaInfo", "MakeChatEcho", "MakeChatReply", "MakeChatRequest", "MakeConsentRequired",
]
