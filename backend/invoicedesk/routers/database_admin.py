"""Database maintenance endpoints: status, export, restart and backups.

None of these handlers take a session from `get_async_db_dependency`: restart
and restore drain every open session before swapping the file, and a handler
holding one would wait on itself.
"""
import asyncio
import logging
from datetime import date

import structlog
from fastapi import APIRouter, HTTPException, status
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel
from sqlalchemy import text

from ..config.database import db_manager, get_async_db
from ..services import backup_service
from ..utils.errors import DomainError, ERROR_CODES, to_http_exception

logger = logging.getLogger(__name__)
audit_log = structlog.get_logger("invoicedesk.database_admin")

router = APIRouter(prefix="/api/database", tags=["database"])


class BackupSelection(BaseModel):
    filename: str = ""


@router.get("/status")
async def database_status():
    path = str(db_manager.path) if db_manager.path else None
    try:
        async with get_async_db() as db:
            await db.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001 - reported to the caller
        logger.error("Database status check failed: %s", exc)
        return JSONResponse(status_code=500, content={"ok": False, "error": str(exc), "path": path})
    return {"ok": True, "path": path}


@router.get("/export")
async def export_database():
    """Download the live database file."""
    if db_manager.path is None or not db_manager.path.exists():
        http_exc = HTTPException(status_code=404, detail="Database file not found")
        setattr(http_exc, "code", ERROR_CODES["not_found"])
        raise http_exc
    return FileResponse(
        db_manager.path,
        media_type="application/octet-stream",
        filename=f"invoices-backup-{date.today().isoformat()}.db",
    )


@router.post("/restart")
async def restart_database():
    try:
        await db_manager.restart()
    except DomainError as exc:
        raise to_http_exception(exc)
    audit_log.info("database_restarted", path=str(db_manager.path))
    return {"success": True, "message": "Database connection restarted successfully"}


@router.get("/backups")
async def list_backups():
    return {"backups": backup_service.list_backups(db_manager.path)}


@router.post("/backups", status_code=status.HTTP_201_CREATED)
async def create_backup():
    try:
        created = await asyncio.to_thread(backup_service.create_backup, db_manager.path)
    except DomainError as exc:
        raise to_http_exception(exc)
    return {"success": True, "filename": created.name}


@router.post("/backups/use")
async def use_backup(payload: BackupSelection):
    try:
        safety = await backup_service.restore_backup(db_manager, payload.filename)
    except DomainError as exc:
        raise to_http_exception(exc)
    audit_log.info("backup_restored", filename=payload.filename, safety_backup=safety.name)
    return {
        "success": True,
        "message": "Backup restored and database restarted",
        "safety_backup": safety.name,
    }


@router.post("/backups/delete-all")
async def delete_all_backups():
    deleted = backup_service.delete_all_backups(db_manager.path)
    audit_log.info("backups_deleted", count=deleted)
    return {"success": True, "deleted": deleted}
