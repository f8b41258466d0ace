"""
Liveness and readiness probes.

/health answers as long as the process is up. /ready also runs a
trivial query against the collection store and reports whether a
vision API key is configured; only the store decides the status code.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from scanbinder.config import settings
from scanbinder.db.database import get_session

router = APIRouter(tags=["health"])


class ProbeResponse(BaseModel):
    status: str
    database: str | None = None
    recognition: str | None = None


@router.get("/health", response_model=ProbeResponse)
async def health() -> ProbeResponse:
    return ProbeResponse(status="healthy")


@router.get("/ready", response_model=ProbeResponse, responses={503: {"model": ProbeResponse}})
async def ready(
    response: Response,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ProbeResponse:
    """Ready when the store answers. Returns 503 otherwise."""
    recognition = "configured" if settings.google_vision_api_key else "missing key"
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return ProbeResponse(status="not ready", database="disconnected", recognition=recognition)
    return ProbeResponse(status="ready", database="connected", recognition=recognition)
