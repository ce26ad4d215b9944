"""System router providing health and readiness endpoints."""
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..config.database import async_database_health_check
from ..config.observability import uptime_seconds

router = APIRouter(prefix="/api")


@router.get("/health", tags=["System"])  # liveness, polled by the desktop shell
async def health():
    return {"status": "ok"}


@router.get("/system/readiness", tags=["System"])  # readiness: db connectivity
async def readiness():
    db_health = await async_database_health_check()
    body = {"database": db_health, "uptime_s": int(uptime_seconds())}
    if not db_health["connection"]:
        return JSONResponse(status_code=503, content=body)
    return body
