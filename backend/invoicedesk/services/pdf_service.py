"""PDF Service

Prints the invoice preview page to PDF with a headless Chromium driven by
Playwright. Every request launches its own browser process so one stuck
render cannot affect another; an asyncio.Semaphore caps how many run at once
and the whole render is bounded by ``PDF_TIMEOUT_SECONDS``.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Protocol

from playwright.async_api import Error as PlaywrightError, async_playwright

from ..config.observability import time_pdf_render
from ..config.settings import get_settings
from ..utils.errors import PdfRenderError

LOGGER = logging.getLogger("pdf_service")

PAGE_FORMAT = "A4"
PAGE_MARGINS = {"top": "20mm", "bottom": "20mm", "left": "15mm", "right": "15mm"}


class PdfConverter(Protocol):
    async def render_pdf(self, url: str) -> bytes:
        ...


class PlaywrightPdfConverter:
    """HTML page -> PDF bytes via Chromium's print-to-pdf."""

    def __init__(
        self,
        executable_path: Optional[str] = None,
        timeout_seconds: float = 60.0,
        max_concurrency: int = 2,
    ):
        self.executable_path = executable_path
        self.timeout_seconds = timeout_seconds
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))

    def _launch_options(self) -> dict:
        options: dict = {"headless": True}
        if self.executable_path:
            if not Path(self.executable_path).exists():
                raise PdfRenderError(
                    "Configured browser executable not found",
                    details={"executable_path": self.executable_path},
                )
            options["executable_path"] = self.executable_path
        return options

    async def _print(self, url: str) -> bytes:
        options = self._launch_options()
        async with async_playwright() as pw:
            browser = await pw.chromium.launch(**options)
            try:
                page = await browser.new_page()
                await page.goto(url, wait_until="networkidle")
                return await page.pdf(
                    format=PAGE_FORMAT,
                    print_background=True,
                    margin=PAGE_MARGINS,
                )
            finally:
                await browser.close()

    async def render_pdf(self, url: str) -> bytes:
        async with self._semaphore:
            with time_pdf_render() as outcome:
                try:
                    pdf = await asyncio.wait_for(self._print(url), self.timeout_seconds)
                except asyncio.TimeoutError as exc:
                    outcome["value"] = "timeout"
                    LOGGER.error("PDF render timed out after %ss for %s", self.timeout_seconds, url)
                    raise PdfRenderError("PDF generation timed out") from exc
                except PlaywrightError as exc:
                    LOGGER.error("PDF render failed for %s: %s", url, exc)
                    raise PdfRenderError(f"Failed to generate PDF: {exc}") from exc
        LOGGER.info("Rendered PDF (%d bytes) from %s", len(pdf), url)
        return pdf


_converter: Optional[PlaywrightPdfConverter] = None


def get_pdf_converter() -> PdfConverter:
    """FastAPI dependency returning the process-wide converter."""
    global _converter
    if _converter is None:
        s = get_settings()
        _converter = PlaywrightPdfConverter(
            executable_path=s.PDF_BROWSER_EXECUTABLE,
            timeout_seconds=s.PDF_TIMEOUT_SECONDS,
            max_concurrency=s.PDF_MAX_CONCURRENCY,
        )
    return _converter


__all__ = ["PdfConverter", "PlaywrightPdfConverter", "get_pdf_converter"]
