"""Test configuration and fixtures.

Every test that touches the store gets its own SQLite file under pytest's
tmp_path; the global `db_manager` is started on it and stopped afterwards.
The PDF converter and rate provider are swapped for in-process fakes through
FastAPI dependency overrides, so no browser or network access is needed.
"""

import sys
from pathlib import Path
from typing import AsyncGenerator, List, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# --- Ensure backend root on sys.path (source checkout without install) ---
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from invoicedesk.config.database import db_manager  # noqa: E402
from invoicedesk.main import app  # noqa: E402
from invoicedesk.services.pdf_service import get_pdf_converter  # noqa: E402
from invoicedesk.services.rate_service import get_rate_provider  # noqa: E402
from invoicedesk.utils.errors import PdfRenderError, RateLookupError  # noqa: E402

FAKE_PDF = b"%PDF-1.4\n%fake invoice\n%%EOF"

SAMPLE_RATES = {
    "usd": "36.25",
    "eur": "39.10",
    "source": "CME",
    "type": "We Sell",
    "businessDate": "2025-03-07",
    "updatedTime": "09:30",
}


class FakePdfConverter:
    """Records requested URLs; optionally fails like a browser launch error."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.urls: List[str] = []

    async def render_pdf(self, url: str) -> bytes:
        self.urls.append(url)
        if self.fail:
            raise PdfRenderError("Failed to generate PDF: browser not available")
        return FAKE_PDF


class FakeRateProvider:
    def __init__(self, rates: Optional[dict] = None, fail: bool = False):
        self.rates = rates or SAMPLE_RATES
        self.fail = fail

    async def fetch_rates(self) -> dict:
        if self.fail:
            raise RateLookupError("Failed to fetch CME rates")
        return dict(self.rates)


@pytest_asyncio.fixture
async def database(tmp_path):
    """Open the global store on a fresh file for the duration of one test."""
    await db_manager.start(tmp_path / "data" / "invoices.db")
    try:
        yield db_manager
    finally:
        await db_manager.stop()


@pytest_asyncio.fixture
async def db_session(database):
    async with database.session() as session:
        yield session


@pytest.fixture
def pdf_converter():
    fake = FakePdfConverter()
    app.dependency_overrides[get_pdf_converter] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_pdf_converter, None)


@pytest.fixture
def failing_pdf_converter():
    fake = FakePdfConverter(fail=True)
    app.dependency_overrides[get_pdf_converter] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_pdf_converter, None)


@pytest.fixture
def rate_provider():
    fake = FakeRateProvider()
    app.dependency_overrides[get_rate_provider] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_rate_provider, None)


@pytest_asyncio.fixture
async def async_client(database) -> AsyncGenerator[AsyncClient, None]:  # noqa: ARG001
    """Async HTTP client bound to the app; the store is already open."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def client_id(async_client: AsyncClient) -> int:
    resp = await async_client.post("/api/clients", json={
        "contact_person": "Jane Doe",
        "email": "jane@example.com",
        "phone": "+597 555 0100",
        "address": "Kernkampweg 12, Paramaribo",
    })
    assert resp.status_code == 201, resp.text
    return resp.json()["client_id"]


@pytest.fixture
def fixed_today(monkeypatch):
    """Pin the invoice clock to 2025-03-07."""
    from datetime import date
    from invoicedesk.services import invoice_service

    today = date(2025, 3, 7)
    monkeypatch.setattr(invoice_service, "_today", lambda: today)
    return today


# Test markers for categorizing tests

def _register_markers(config):  # noqa: D401
    """Internal helper to register custom markers (invoked from hook)."""
    markers = [
        ("contract", "mark test as a contract test"),
        ("integration", "mark test as an integration test"),
        ("unit", "mark test as a unit test"),
        ("slow", "mark test as slow running"),
    ]
    for name, desc in markers:
        config.addinivalue_line("markers", f"{name}: {desc}")


def pytest_configure(config):  # noqa: D401
    _register_markers(config)
