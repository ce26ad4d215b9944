"""Application settings module.

Provides centralized configuration using environment variables with sane defaults.
The database lives in a single SQLite file; by default under the user's home
directory so data survives application moves and reinstalls.
"""
from __future__ import annotations

from functools import lru_cache
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel


DEFAULT_DATABASE_PATH = Path.home() / "InvoiceApp" / "data" / "invoices.db"
DEFAULT_CME_RATES_URL = "https://www.cme.sr/Home/GetTodaysExchangeRates/?BusinessDate=2016-07-25"
DEFAULT_CME_HOME_URL = "https://www.cme.sr/"


class Settings(BaseModel):
    # Store
    DATABASE_PATH: str = str(DEFAULT_DATABASE_PATH)
    DATABASE_ECHO: bool = False
    DB_DRAIN_TIMEOUT_SECONDS: float = 10.0

    # HTTP server (spawned by the desktop shell)
    BACKEND_HOST: str = "127.0.0.1"
    BACKEND_PORT: int = 5000

    # Document rendering
    CURRENCY_SYMBOL: str = "$"
    PDF_TIMEOUT_SECONDS: float = 60.0
    PDF_MAX_CONCURRENCY: int = 2
    PDF_BROWSER_EXECUTABLE: Optional[str] = None
    PDF_SOURCE_BASE_URL: Optional[str] = None

    # Currency rates
    CME_RATES_URL: str = DEFAULT_CME_RATES_URL
    CME_HOME_URL: str = DEFAULT_CME_HOME_URL
    RATES_TIMEOUT_SECONDS: float = 10.0

    LOG_LEVEL: str = "INFO"

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from environment with type coercion and defaults."""
        def _get_float(name: str, default: float) -> float:
            raw = os.getenv(name)
            if raw is None:
                return default
            try:
                return float(raw)
            except ValueError:
                return default

        def _get_int(name: str, default: int) -> int:
            raw = os.getenv(name)
            if raw is None:
                return default
            try:
                return int(raw)
            except ValueError:
                return default

        def _get_bool(name: str, default: bool) -> bool:
            raw = os.getenv(name)
            if raw is None:
                return default
            return raw.lower() in {"1", "true", "yes", "on"}

        return cls(
            DATABASE_PATH=os.getenv("DATABASE_PATH", str(DEFAULT_DATABASE_PATH)),
            DATABASE_ECHO=_get_bool("DATABASE_ECHO", False),
            DB_DRAIN_TIMEOUT_SECONDS=_get_float("DB_DRAIN_TIMEOUT_SECONDS", 10.0),
            BACKEND_HOST=os.getenv("BACKEND_HOST", "127.0.0.1"),
            BACKEND_PORT=_get_int("BACKEND_PORT", 5000),
            CURRENCY_SYMBOL=os.getenv("CURRENCY_SYMBOL", "$"),
            PDF_TIMEOUT_SECONDS=_get_float("PDF_TIMEOUT_SECONDS", 60.0),
            PDF_MAX_CONCURRENCY=max(1, _get_int("PDF_MAX_CONCURRENCY", 2)),
            PDF_BROWSER_EXECUTABLE=os.getenv("PDF_BROWSER_EXECUTABLE") or None,
            PDF_SOURCE_BASE_URL=os.getenv("PDF_SOURCE_BASE_URL") or None,
            CME_RATES_URL=os.getenv("CME_RATES_URL", DEFAULT_CME_RATES_URL),
            CME_HOME_URL=os.getenv("CME_HOME_URL", DEFAULT_CME_HOME_URL),
            RATES_TIMEOUT_SECONDS=_get_float("RATES_TIMEOUT_SECONDS", 10.0),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached Settings instance (singleton pattern)."""
    return Settings.load()


__all__ = ["Settings", "get_settings"]
