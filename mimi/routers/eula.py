"""
EULA consent endpoint — called by the LIFF agreement page, no API key.
The latest EULA version in the database is always the one recorded.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from mimi.database import get_db
from mimi.schemas.eula import ConsentRequest, ConsentResponse
from mimi.services.error_sink import log_error
from mimi.services.eula import get_latest_eula, record_consent
from mimi.services.users import resolve_or_create
from mimi.utils.prompts import DECLINED_CONSENT_MESSAGE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/external/line/eula", tags=["eula"])

CONSENT_PATH = "/api/external/line/eula/consent"


def _client_ip(request: Request) -> Optional[str]:
    """CF-Connecting-IP, else the first X-Forwarded-For hop, else the peer address."""
    cf_ip = request.headers.get("CF-Connecting-IP")
    if cf_ip:
        return cf_ip.strip()
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def _failure(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


@router.options("/consent", status_code=status.HTTP_204_NO_CONTENT)
async def eula_consent_preflight() -> Response:
    """Bare OPTIONS without CORS request headers; real preflights are answered by CORSMiddleware."""
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/consent", response_model=ConsentResponse, response_model_exclude_none=True)
async def eula_consent(
    body: ConsentRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """
    Record that a LINE user agreed to the latest EULA.

    agreed=false is acknowledged without any write. Agreeing twice is
    reported as alreadyAgreed and writes nothing the second time.
    """
    if not body.line_user_id:
        return _failure(status.HTTP_400_BAD_REQUEST, "Missing lineUserId")

    if not body.agreed:
        return ConsentResponse(agreed=False, message=DECLINED_CONSENT_MESSAGE)

    try:
        user_id = await resolve_or_create(db, body.line_user_id)

        latest = await get_latest_eula(db)
        if latest is None:
            return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "No EULA version configured.")

        result = await record_consent(
            db,
            user_id,
            latest.id,
            accepted_at=body.agreed_at,
            ip_address=_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
        return ConsentResponse(
            agreed=True,
            already_agreed=result.already_recorded,
            eula_version=latest.version,
        )

    except Exception as exc:
        await log_error("eula_consent", exc, {"path": CONSENT_PATH, "method": "POST"})
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or type(exc).__name__)
