import asyncio

import pytest

from invoicedesk.services.pdf_service import PlaywrightPdfConverter
from invoicedesk.utils.errors import PdfRenderError


class SlowConverter(PlaywrightPdfConverter):
    """Replaces the browser with a sleep so limits can be observed."""

    def __init__(self, delay: float, **kwargs):
        super().__init__(**kwargs)
        self.delay = delay
        self.active = 0
        self.peak = 0

    async def _print(self, url: str) -> bytes:
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.active -= 1
        return b"%PDF-" + url.encode()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_missing_browser_executable(tmp_path):
    converter = PlaywrightPdfConverter(executable_path=str(tmp_path / "no-chrome"))
    with pytest.raises(PdfRenderError) as exc_info:
        await converter.render_pdf("http://127.0.0.1:3001/api/invoices/1/preview")
    assert exc_info.value.details == {"executable_path": str(tmp_path / "no-chrome")}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_render_times_out():
    converter = SlowConverter(delay=1.0, timeout_seconds=0.05)
    with pytest.raises(PdfRenderError, match="timed out"):
        await converter.render_pdf("http://test/a")
    assert converter.active == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_concurrent_renders_are_capped():
    converter = SlowConverter(delay=0.05, max_concurrency=2)
    results = await asyncio.gather(*(converter.render_pdf(f"http://test/{n}") for n in range(5)))
    assert converter.peak == 2
    assert results[3] == b"%PDF-http://test/3"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_concurrency_floor_is_one():
    converter = SlowConverter(delay=0.01, max_concurrency=0)
    await asyncio.gather(converter.render_pdf("http://test/a"), converter.render_pdf("http://test/b"))
    assert converter.peak == 1
