"""
dispatch_console.api.routers.health

Liveness and readiness probes.

`/readyz` fails with 503 when the store cannot be reached, and reports how many
Socket.IO sessions are currently open.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE

from dispatch_console import __version__
from dispatch_console.api.deps import engine_dep, sessions_dep
from dispatch_console.observability.logging import get_logger
from dispatch_console.realtime.sessions import SessionStore

router = APIRouter()
log = get_logger(__name__)


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok", "version": __version__}


@router.get("/readyz")
async def readyz(
    engine: AsyncEngine = Depends(engine_dep),
    sessions: SessionStore | None = Depends(sessions_dep),
) -> dict[str, Any]:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        log.warning("store_unreachable", error=str(e))
        raise HTTPException(status_code=HTTP_503_SERVICE_UNAVAILABLE, detail="store unreachable") from e
    return {"status": "ready", "sessions": len(sessions) if sessions is not None else 0}
