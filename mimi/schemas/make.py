"""Pydantic schemas for the Make.com server-to-server chat endpoint."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MakeChatRequest(_CamelModel):
    """Body for POST /api/external/make/chat. Required fields are checked by the router."""

    line_id: Optional[str] = None
    user_prompt: Optional[str] = None
    source: str = "make"
    metadata: dict[str, Any] = Field(default_factory=dict)


class EulaInfo(_CamelModel):
    id: int
    version: str
    url: str


class MakeChatEcho(_CamelModel):
    line_id: str
    user_prompt: str
    source: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class MakeConsentRequired(_CamelModel):
    """Returned instead of a completion when the user must agree to the EULA first."""

    success: bool = True
    need_eula_consent: bool = True
    eula: EulaInfo
    reply_text: str
    echo: MakeChatEcho


class MakeChatReply(_CamelModel):
    success: bool = True
    reply_text: str
    intent_category: str
    reply_id: str
    source: str
    echo: MakeChatEcho
