"""Pydantic schemas for the LIFF consent endpoint."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel

_DATETIME = TypeAdapter(datetime)


class ConsentRequest(BaseModel):
    """
    Body for POST /api/external/line/eula/consent — sent by the LIFF page.
    eulaVersion is informational; the latest version in the database wins.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    line_user_id: Optional[str] = None
    agreed: bool = False
    agreed_at: Optional[datetime] = None
    eula_version: Optional[str] = None
    display_name: Optional[str] = None
    liff_context: Optional[dict[str, Any]] = None

    @field_validator("agreed_at", mode="before")
    @classmethod
    def _lenient_agreed_at(cls, value: Any) -> Optional[datetime]:
        """An unreadable agreedAt is dropped; the server time is used instead."""
        if value is None or value == "":
            return None
        try:
            return _DATETIME.validate_python(value)
        except ValidationError:
            return None


class ConsentResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    agreed: bool
    already_agreed: Optional[bool] = None
    eula_version: Optional[str] = None
    message: Optional[str] = Field(None)
