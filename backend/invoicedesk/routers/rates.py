"""Currency rate lookup (best-effort external collaborator)."""
from fastapi import APIRouter, Depends

from ..services.rate_service import RateProvider, get_rate_provider
from ..utils.errors import DomainError, to_http_exception

router = APIRouter(prefix="/api/rates", tags=["rates"])


@router.get("/cme")
async def cme_rates(provider: RateProvider = Depends(get_rate_provider)):
    try:
        return await provider.fetch_rates()
    except DomainError as exc:
        raise to_http_exception(exc)
