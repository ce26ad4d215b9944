from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.database import get_async_db_dependency
from ..services.company_service import CompanyProfile, get_company_profile, save_company_profile

router = APIRouter(prefix="/api/company", tags=["company"])


@router.get("", status_code=status.HTTP_200_OK)
async def get_company(db: AsyncSession = Depends(get_async_db_dependency)) -> CompanyProfile:
    """Return the company profile; every field is null until one is saved."""
    return await get_company_profile(db)


@router.post("", status_code=status.HTTP_200_OK)
async def save_company(payload: CompanyProfile, db: AsyncSession = Depends(get_async_db_dependency)) -> CompanyProfile:
    return await save_company_profile(db, payload)


__all__ = ["router"]
