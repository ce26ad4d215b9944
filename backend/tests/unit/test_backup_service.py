import re

import pytest

from invoicedesk.services.backup_service import (
    backup_prefix,
    create_backup,
    delete_all_backups,
    list_backups,
    resolve_backup,
)
from invoicedesk.utils.errors import BackupNotFound, ValidationError

BACKUP_NAME = re.compile(r"^invoices\.db\.backup-\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2}(-\d+)?$")


@pytest.fixture
def db_file(tmp_path):
    path = tmp_path / "invoices.db"
    path.write_bytes(b"SQLite format 3\x00payload")
    return path


@pytest.mark.unit
def test_backup_prefix(db_file):
    assert backup_prefix(db_file) == "invoices.db.backup-"


@pytest.mark.unit
def test_create_backup_copies_file(db_file):
    backup = create_backup(db_file)
    assert BACKUP_NAME.match(backup.name)
    assert backup.parent == db_file.parent
    assert backup.read_bytes() == db_file.read_bytes()


@pytest.mark.unit
def test_same_second_backups_do_not_collide(db_file):
    first = create_backup(db_file)
    second = create_backup(db_file)
    third = create_backup(db_file)
    assert len({first, second, third}) == 3
    assert all(BACKUP_NAME.match(p.name) for p in (first, second, third))


@pytest.mark.unit
def test_create_backup_without_database(tmp_path):
    with pytest.raises(BackupNotFound):
        create_backup(tmp_path / "missing.db")


@pytest.mark.unit
def test_list_backups_newest_first(db_file):
    (db_file.parent / "invoices.db.backup-2024-01-01_10-00-00").write_bytes(b"a")
    (db_file.parent / "invoices.db.backup-2025-06-30_08-15-00").write_bytes(b"b")
    (db_file.parent / "invoices.db.backup-2024-12-31_23-59-59").write_bytes(b"c")
    (db_file.parent / "other.db.backup-2026-01-01_00-00-00").write_bytes(b"d")
    (db_file.parent / "notes.txt").write_text("x")
    assert list_backups(db_file) == [
        "invoices.db.backup-2025-06-30_08-15-00",
        "invoices.db.backup-2024-12-31_23-59-59",
        "invoices.db.backup-2024-01-01_10-00-00",
    ]


@pytest.mark.unit
def test_list_backups_missing_directory(tmp_path):
    assert list_backups(tmp_path / "nowhere" / "invoices.db") == []


@pytest.mark.unit
def test_resolve_backup_accepts_known_file(db_file):
    backup = create_backup(db_file)
    assert resolve_backup(db_file, backup.name) == backup


@pytest.mark.unit
@pytest.mark.parametrize("name", [
    "",
    "../invoices.db.backup-2025-01-01_00-00-00",
    "sub/invoices.db.backup-2025-01-01_00-00-00",
    "invoices.db",
    "passwd",
])
def test_resolve_backup_rejects_foreign_names(db_file, name):
    with pytest.raises(ValidationError):
        resolve_backup(db_file, name)


@pytest.mark.unit
def test_resolve_backup_missing_file(db_file):
    with pytest.raises(BackupNotFound):
        resolve_backup(db_file, "invoices.db.backup-2020-01-01_00-00-00")


@pytest.mark.unit
def test_delete_all_backups_keeps_live_file(db_file):
    create_backup(db_file)
    create_backup(db_file)
    assert delete_all_backups(db_file) == 2
    assert list_backups(db_file) == []
    assert db_file.exists()
    assert delete_all_backups(db_file) == 0
