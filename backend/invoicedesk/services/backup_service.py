"""Database file backups.

Backups are plain copies of the SQLite file placed next to it and named
``<dbfile>.backup-YYYY-MM-DD_HH-MM-SS`` (local time). Restoring swaps the live
file through `DatabaseManager.replace`, which drains in-flight sessions first
and keeps a safety backup of the file being replaced.
"""
from __future__ import annotations

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import List

from ..config.database import DatabaseManager
from ..utils.errors import BackupNotFound, ValidationError

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"


def backup_prefix(db_path: Path) -> str:
    return f"{db_path.name}.backup-"


def list_backups(db_path: Path) -> List[str]:
    """Backup file names, newest first."""
    directory = db_path.parent
    if not directory.exists():
        return []
    prefix = backup_prefix(db_path)
    names = [p.name for p in directory.iterdir() if p.is_file() and p.name.startswith(prefix)]
    return sorted(names, reverse=True)


def _new_backup_path(db_path: Path) -> Path:
    stem = backup_prefix(db_path) + datetime.now().strftime(TIMESTAMP_FORMAT)
    candidate = db_path.with_name(stem)
    n = 1
    # Two backups in the same second must not overwrite each other
    while candidate.exists():
        candidate = db_path.with_name(f"{stem}-{n}")
        n += 1
    return candidate


def create_backup(db_path: Path) -> Path:
    if not db_path.exists():
        raise BackupNotFound("Database file not found", details={"path": str(db_path)})
    target = _new_backup_path(db_path)
    shutil.copyfile(db_path, target)
    logger.info("Created database backup %s", target.name)
    return target


def resolve_backup(db_path: Path, filename: str) -> Path:
    """Map a client-supplied name to a backup file, rejecting anything else."""
    if not filename:
        raise ValidationError("Missing filename")
    safe_name = Path(filename).name
    if safe_name != filename or not safe_name.startswith(backup_prefix(db_path)):
        raise ValidationError("Invalid backup filename", details={"filename": filename})
    path = db_path.with_name(safe_name)
    if not path.is_file():
        raise BackupNotFound("Backup file not found", details={"filename": safe_name})
    return path


async def restore_backup(manager: DatabaseManager, filename: str) -> Path:
    """Make `filename` the live database; returns the safety backup of the old file."""
    source = resolve_backup(manager.path, filename)
    safety = _new_backup_path(manager.path)
    await manager.replace(source, safety_copy=safety)
    logger.info("Restored database from %s (previous file kept as %s)", source.name, safety.name)
    return safety


def delete_all_backups(db_path: Path) -> int:
    names = list_backups(db_path)
    for name in names:
        db_path.with_name(name).unlink(missing_ok=True)
    logger.info("Deleted %d database backups", len(names))
    return len(names)


__all__ = [
    "backup_prefix",
    "list_backups",
    "create_backup",
    "resolve_backup",
    "restore_backup",
    "delete_all_backups",
]
