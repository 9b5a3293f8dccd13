"""Pydantic schemas for the LINE webhook payload (only the fields this service reads)."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LineSource(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str = "user"
    user_id: Optional[str] = Field(None, alias="userId")


class LineMessage(BaseModel):
    """Message object of a message event; `text` is set for text, `id` references media."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    type: str
    text: Optional[str] = None


class LineEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str
    reply_token: Optional[str] = Field(None, alias="replyToken")
    source: Optional[LineSource] = None
    message: Optional[LineMessage] = None

    @property
    def sender_id(self) -> Optional[str]:
        return self.source.user_id if self.source else None

    def excerpt(self) -> dict:
        """Small, log-safe view of the event for the error sink."""
        return {
            "type": self.type,
            "message_type": self.message.type if self.message else None,
            "message_id": self.message.id if self.message else None,
            "sender": self.sender_id,
        }


class LineWebhookBody(BaseModel):
    """Body of POST /api/external/line/webhook — one delivery, many events."""

    model_config = ConfigDict(extra="ignore")

    destination: Optional[str] = None
    events: list[LineEvent] = Field(default_factory=list)
