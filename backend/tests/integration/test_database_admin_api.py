"""Backup, restore, export and restart endpoints."""
import asyncio
import shutil
import time

import pytest

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


async def _add_client(async_client, name):
    resp = await async_client.post("/api/clients", json={"contact_person": name})
    return resp.json()["client_id"]


async def _names(async_client):
    return [c["contact_person"] for c in (await async_client.get("/api/clients")).json()]


async def test_status_reports_path(async_client, database):
    resp = await async_client.get("/api/database/status")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "path": str(database.path)}


async def test_export_streams_sqlite_file(async_client, database):
    resp = await async_client.get("/api/database/export")
    assert resp.status_code == 200
    assert resp.content.startswith(b"SQLite format 3")
    assert "invoices-backup-" in resp.headers["content-disposition"]


async def test_backup_then_restore_round_trip(async_client, database):
    await _add_client(async_client, "Before")
    resp = await async_client.post("/api/database/backups")
    assert resp.status_code == 201
    filename = resp.json()["filename"]
    assert filename.startswith("invoices.db.backup-")

    await _add_client(async_client, "After")
    assert await _names(async_client) == ["After", "Before"]

    listing = (await async_client.get("/api/database/backups")).json()
    assert listing["backups"] == [filename]

    resp = await async_client.post("/api/database/backups/use", json={"filename": filename})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["success"] is True
    safety = body["safety_backup"]
    assert safety != filename

    assert await _names(async_client) == ["Before"]
    backups = (await async_client.get("/api/database/backups")).json()["backups"]
    assert set(backups) == {filename, safety}

    # The safety copy holds the state that was replaced
    resp = await async_client.post("/api/database/backups/use", json={"filename": safety})
    assert resp.status_code == 200
    assert await _names(async_client) == ["After", "Before"]


@pytest.mark.parametrize("filename", ["", "../invoices.db", "invoices.db", "/etc/passwd"])
async def test_restore_rejects_invalid_names(async_client, database, filename):
    resp = await async_client.post("/api/database/backups/use", json={"filename": filename})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_restore_missing_backup(async_client, database):
    resp = await async_client.post(
        "/api/database/backups/use", json={"filename": "invoices.db.backup-2001-01-01_00-00-00"})
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "BACKUP_NOT_FOUND"


async def test_restore_corrupt_backup_keeps_current_data(async_client, database):
    await _add_client(async_client, "Keep me")
    corrupt = database.path.with_name("invoices.db.backup-2001-01-01_00-00-00")
    corrupt.write_bytes(b"definitely not a database " * 200)

    resp = await async_client.post("/api/database/backups/use", json={"filename": corrupt.name})
    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "DB_ERROR"

    assert (await async_client.get("/api/database/status")).json()["ok"] is True
    assert await _names(async_client) == ["Keep me"]


async def test_delete_all_backups(async_client, database):
    await async_client.post("/api/database/backups")
    await async_client.post("/api/database/backups")
    resp = await async_client.post("/api/database/backups/delete-all")
    assert resp.json() == {"success": True, "deleted": 2}
    assert (await async_client.get("/api/database/backups")).json() == {"backups": []}
    assert database.path.exists()


async def test_restart_keeps_data(async_client, database):
    await _add_client(async_client, "Persistent")
    resp = await async_client.post("/api/database/restart")
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert await _names(async_client) == ["Persistent"]


async def test_backup_copy_runs_off_event_loop(async_client, database, monkeypatch):

    real_copy = shutil.copyfile

    def slow_copy(src, dst, *args, **kwargs):
        time.sleep(0.2)
        return real_copy(src, dst, *args, **kwargs)

    monkeypatch.setattr(shutil, "copyfile", slow_copy)
    ticks = 0

    async def ticker():
        nonlocal ticks
        while True:
            await asyncio.sleep(0.01)
            ticks += 1

    task = asyncio.create_task(ticker())
    try:
        resp = await async_client.post("/api/database/backups")
    finally:
        task.cancel()
    assert resp.status_code == 201
    assert ticks >= 10
