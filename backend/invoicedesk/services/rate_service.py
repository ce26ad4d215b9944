"""Exchange rates published by the Central Bank of Suriname (CME).

The JSON endpoint is tried first; when it does not carry both sale rates the
public home page is fetched and the rates are read from its markup.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import httpx
from bs4 import BeautifulSoup

from ..config.settings import get_settings
from ..utils.errors import RateLookupError

logger = logging.getLogger(__name__)

USER_AGENT = "invoicedesk/1.0"
RATE_SOURCE = "CME"
RATE_TYPE = "We Sell"


class RateProvider(Protocol):
    async def fetch_rates(self) -> Dict[str, Any]:
        ...


def _first_record(data: Any) -> Optional[dict]:
    if isinstance(data, list):
        return data[0] if data and isinstance(data[0], dict) else None
    return data if isinstance(data, dict) else None


def parse_api_rates(data: Any) -> Optional[Dict[str, Any]]:
    """Rates from the JSON endpoint payload, or None when incomplete."""
    record = _first_record(data)
    if not record:
        return None
    usd = record.get("SaleUsdExchangeRate")
    eur = record.get("SaleEuroExchangeRate")
    if usd is None or eur is None:
        return None
    try:
        usd, eur = float(usd), float(eur)
    except (TypeError, ValueError):
        return None
    return {
        "usd": f"{usd:.2f}",
        "eur": f"{eur:.2f}",
        "source": RATE_SOURCE,
        "type": RATE_TYPE,
        "businessDate": record.get("BusinessDate"),
        "updatedTime": record.get("UpdatedTime"),
    }


def parse_home_page_rates(html: str) -> Optional[Dict[str, Any]]:
    soup = BeautifulSoup(html, "html.parser")
    usd_el = soup.select_one("#SaleUSDRate")
    eur_el = soup.select_one("#SaleEURORate")
    usd = usd_el.get_text(strip=True) if usd_el else ""
    eur = eur_el.get_text(strip=True) if eur_el else ""
    if not usd or not eur:
        return None
    return {"usd": usd, "eur": eur, "source": RATE_SOURCE, "type": RATE_TYPE}


class CmeRateProvider:
    def __init__(self, rates_url: str, home_url: str, timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.rates_url = rates_url
        self.home_url = home_url
        self.timeout = timeout
        self._transport = transport

    async def fetch_rates(self) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.rates_url,
                    headers={"User-Agent": USER_AGENT, "X-Requested-With": "XMLHttpRequest"},
                )
                resp.raise_for_status()
                try:
                    rates = parse_api_rates(resp.json())
                except ValueError:
                    rates = None
                if rates:
                    return rates

                logger.info("CME rates endpoint incomplete; falling back to home page")
                page = await client.get(self.home_url, headers={"User-Agent": USER_AGENT})
                page.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Failed to fetch CME rates: %s", exc)
            raise RateLookupError("Failed to fetch CME rates") from exc

        rates = parse_home_page_rates(page.text)
        if not rates:
            raise RateLookupError("Failed to parse CME rates")
        return rates


def get_rate_provider() -> RateProvider:
    """FastAPI dependency; overridden with a fake in tests."""
    s = get_settings()
    return CmeRateProvider(s.CME_RATES_URL, s.CME_HOME_URL, timeout=s.RATES_TIMEOUT_SECONDS)


__all__ = [
    "RateProvider",
    "CmeRateProvider",
    "parse_api_rates",
    "parse_home_page_rates",
    "get_rate_provider",
]
