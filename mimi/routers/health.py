"""Health check endpoints — used by load balancers and uptime monitoring."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from mimi.database import check_db_connectivity

router = APIRouter(tags=["health"])

ROOT_MESSAGE = "AI小咪後端運作正常（EULA 檢查 + LIFF 同意 API + 多輪對談 + 分類 + 餐點照片分析）"


@router.get("/")
async def root() -> dict:
    return {"success": True, "message": ROOT_MESSAGE}


@router.get("/health")
async def health() -> dict:
    """Liveness check — returns 200 if the process is running."""
    return {"status": "ok", "version": "1.0.0"}


@router.get("/ready")
async def ready() -> JSONResponse:
    """Readiness check — 200 {"db": "ok"} when the database answers, else 503."""
    db_ok = await check_db_connectivity()
    return JSONResponse(
        content={"db": "ok" if db_ok else "error"},
        status_code=200 if db_ok else 503,
    )
