"""Company profile persistence.

The profile is a single configuration value stored as JSON in ``app_settings``
under the ``company`` key. Reading a profile that was never saved yields an
empty profile; saving is an upsert.
"""
from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.database import COMPANY_SETTING_KEY
from ..models.database import AppSetting

logger = logging.getLogger(__name__)


class CompanyProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    address: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    bank_info_1: Optional[str] = None
    bank_info_2: Optional[str] = None


async def get_company_profile(db: AsyncSession) -> CompanyProfile:
    result = await db.execute(select(AppSetting).where(AppSetting.key == COMPANY_SETTING_KEY))
    row = result.scalar_one_or_none()
    if row is None or not isinstance(row.value, dict):
        return CompanyProfile()
    return CompanyProfile.model_validate(row.value)


async def save_company_profile(db: AsyncSession, profile: CompanyProfile) -> CompanyProfile:
    """Insert or overwrite the stored profile."""
    result = await db.execute(select(AppSetting).where(AppSetting.key == COMPANY_SETTING_KEY))
    row = result.scalar_one_or_none()
    value = profile.model_dump()
    if row is None:
        db.add(AppSetting(key=COMPANY_SETTING_KEY, value=value))
    else:
        row.value = value
    await db.commit()
    logger.info("Company profile saved")
    return profile


__all__ = ["CompanyProfile", "get_company_profile", "save_company_profile"]
