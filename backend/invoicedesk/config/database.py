"""
Database configuration and connection management.

The store is a single SQLite file accessed through an async SQLAlchemy engine.
`DatabaseManager` owns that engine and can swap the underlying file at runtime
(restart, restore from backup): new sessions are held back, in-flight sessions
are drained, the engine is disposed, the file replaced and the engine reopened.
If the reopen fails, the previous file is copied back before the error is raised.
"""

import asyncio
import logging
import shutil
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from sqlalchemy import event, inspect, text
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker

from ..models.database import AppSetting, Base, utcnow
from ..utils.errors import DatabaseBusy
from .settings import get_settings


logger = logging.getLogger(__name__)

# Columns added after the first release; older files are upgraded in place.
LEGACY_INVOICE_COLUMNS = {
    "project": "TEXT",
    "created_at": "DATETIME",
    "paid_at": "DATETIME",
    "advance_paid_at": "DATETIME",
}
COMPANY_SETTING_KEY = "company"


def async_url_for(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


def sync_url_for(path: Path) -> str:
    return f"sqlite:///{path}"


def _receive_before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    context._query_start_time = time.time()


def _receive_after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    """Log slow queries for performance monitoring."""
    total = time.time() - context._query_start_time
    if total > 0.1:
        logger.warning("Slow query detected: %.3fs - %s...", total, statement[:100])


def prepare_schema(conn: Connection) -> None:
    """Create missing tables and bring files written by older releases up to date."""
    Base.metadata.create_all(conn)
    inspector = inspect(conn)
    existing = {col["name"] for col in inspector.get_columns("invoices")}
    for name, ddl_type in LEGACY_INVOICE_COLUMNS.items():
        if name not in existing:
            conn.execute(text(f"ALTER TABLE invoices ADD COLUMN {name} {ddl_type}"))
            logger.info("Added %s column to invoices table", name)

    if "company" in inspector.get_table_names():
        _import_legacy_company(conn)


def _import_legacy_company(conn: Connection) -> None:
    """Copy the legacy single-row company table into app_settings once."""
    already = conn.execute(
        text("SELECT 1 FROM app_settings WHERE key = :key"), {"key": COMPANY_SETTING_KEY}
    ).first()
    if already:
        return
    columns = {col["name"] for col in inspect(conn).get_columns("company")}
    wanted = ["name", "address", "email", "phone", "bank_info_1", "bank_info_2"]
    present = [c for c in wanted if c in columns]
    if not present:
        return
    row = conn.execute(
        text(f"SELECT {', '.join(present)} FROM company ORDER BY id LIMIT 1")
    ).mappings().first()
    if not row:
        return
    profile = {c: row.get(c) for c in wanted}
    conn.execute(
        AppSetting.__table__.insert().values(
            key=COMPANY_SETTING_KEY, value=profile, updated_at=utcnow())
    )
    logger.info("Imported legacy company row into app_settings")


class DatabaseManager:
    """Owns the async engine for the current database file."""

    def __init__(self):
        self.path: Optional[Path] = None
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None
        self._cond: Optional[asyncio.Condition] = None
        self._inflight = 0
        self._swapping = False

    @property
    def is_open(self) -> bool:
        return self.engine is not None

    async def start(self, path: Optional[Path] = None) -> None:
        """Open the store at `path` (defaults to settings) and prepare the schema."""
        settings = get_settings()
        self.path = Path(path or settings.DATABASE_PATH).expanduser()
        self._cond = asyncio.Condition()
        self._inflight = 0
        self._swapping = False
        await self._connect()

    async def _connect(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        engine = create_async_engine(
            async_url_for(self.path),
            echo=get_settings().DATABASE_ECHO,
            connect_args={"check_same_thread": False},
        )
        event.listen(engine.sync_engine, "before_cursor_execute", _receive_before_cursor_execute)
        event.listen(engine.sync_engine, "after_cursor_execute", _receive_after_cursor_execute)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(prepare_schema)
        except Exception:
            await engine.dispose()
            raise
        self.engine = engine
        self.session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False,
        )
        logger.info("Connected to SQLite database at %s", self.path)

    async def _disconnect(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
        self.engine = None
        self.session_factory = None

    async def stop(self) -> None:
        await self._disconnect()

    async def _acquire(self) -> None:
        if self._cond is None:
            raise RuntimeError("Database is not open")
        async with self._cond:
            await self._cond.wait_for(lambda: not self._swapping)
            if self.session_factory is None:
                raise RuntimeError("Database is not open")
            self._inflight += 1

    async def _release(self) -> None:
        async with self._cond:
            self._inflight -= 1
            self._cond.notify_all()

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session; rolls back on error, counted for draining."""
        await self._acquire()
        try:
            async with self.session_factory() as session:
                try:
                    yield session
                except Exception:
                    await session.rollback()
                    raise
        finally:
            await self._release()

    async def _begin_swap(self) -> None:
        timeout = get_settings().DB_DRAIN_TIMEOUT_SECONDS
        async with self._cond:
            if self._swapping:
                raise DatabaseBusy("A database replacement is already in progress")
            self._swapping = True
            try:
                await asyncio.wait_for(
                    self._cond.wait_for(lambda: self._inflight == 0), timeout)
            except asyncio.TimeoutError:
                self._swapping = False
                self._cond.notify_all()
                raise DatabaseBusy(
                    "Timed out waiting for in-flight queries to finish")

    async def _end_swap(self) -> None:
        async with self._cond:
            self._swapping = False
            self._cond.notify_all()

    async def restart(self) -> None:
        """Close and reopen the current file."""
        await self.replace(None)

    async def replace(self, source: Optional[Path], safety_copy: Optional[Path] = None) -> None:
        """Swap the database file for `source` (or just reopen when None).

        `safety_copy` receives a copy of the current file before it is overwritten;
        it is what gets restored if the new file cannot be opened.
        """
        await self._begin_swap()
        try:
            await self._disconnect()
            restore_from: Optional[Path] = None
            if source is not None:
                if self.path.exists():
                    restore_from = safety_copy or self.path.with_name(self.path.name + ".swap")
                    await asyncio.to_thread(shutil.copyfile, self.path, restore_from)
                await asyncio.to_thread(shutil.copyfile, source, self.path)
            try:
                await self._connect()
            except Exception:
                logger.error("Failed to reopen database at %s", self.path, exc_info=True)
                if restore_from is not None:
                    await asyncio.to_thread(shutil.copyfile, restore_from, self.path)
                    logger.info("Restored previous database file from %s", restore_from)
                await self._connect()
                raise
            finally:
                if restore_from is not None and safety_copy is None and restore_from.exists():
                    restore_from.unlink()
        finally:
            await self._end_swap()


db_manager = DatabaseManager()


@asynccontextmanager
async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Get async database session context manager that commits on success.

    Usage:
        async with get_async_db() as db:
            ...
    """
    async with db_manager.session() as session:
        yield session
        await session.commit()


async def get_async_db_dependency():
    """
    FastAPI dependency for async database session.

    Usage in FastAPI endpoints:
        @router.get("/clients")
        async def list_clients(db: AsyncSession = Depends(get_async_db_dependency)):
            ...
    """
    async with db_manager.session() as session:
        yield session


async def check_async_database_connection() -> bool:
    """Check if async database connection is working."""
    try:
        async with db_manager.session() as db:
            await db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error("Async database connection check failed: %s", e)
        return False


async def async_database_health_check() -> dict:
    """Database health summary for status endpoints."""
    connection_ok = await check_async_database_connection()
    return {
        "status": "healthy" if connection_ok else "unhealthy",
        "connection": connection_ok,
        "path": str(db_manager.path) if db_manager.path else None,
    }
