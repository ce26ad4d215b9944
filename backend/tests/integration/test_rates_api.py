import pytest

from conftest import SAMPLE_RATES

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


async def test_cme_rates(async_client, rate_provider):
    resp = await async_client.get("/api/rates/cme")
    assert resp.status_code == 200
    assert resp.json() == SAMPLE_RATES


async def test_cme_rates_failure(async_client, rate_provider):
    rate_provider.fail = True
    resp = await async_client.get("/api/rates/cme")
    assert resp.status_code == 502
    body = resp.json()
    assert body["error"] == {"code": "RATE_LOOKUP_FAILED", "message": "Failed to fetch CME rates"}
