"""
Settings API endpoints.

Reads and writes the user's app settings record.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from scanbinder.db.database import get_session
from scanbinder.db.operations import get_settings, save_settings
from scanbinder.models.app_settings import AppSettings

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=AppSettings)
async def read_settings(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AppSettings:
    """Stored settings, or the defaults when none are saved yet."""
    return await get_settings(session)


@router.put("", response_model=AppSettings)
async def write_settings(
    app_settings: AppSettings,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AppSettings:
    """Replace the settings record. Omitted toggles take their defaults."""
    return await save_settings(session, app_settings)
