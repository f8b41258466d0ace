import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from scanbinder.api import (
    collection_router,
    health_router,
    scan_router,
    settings_router,
)
from scanbinder.config import settings
from scanbinder.db.database import Database
from scanbinder.models.failure import KnownError, create_known_failure, create_unknown_failure
from scanbinder.services.scanner import build_scanner

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    database = Database(settings.database_url, echo=settings.debug)
    await database.init_db()
    client = httpx.AsyncClient(timeout=settings.catalog_timeout)

    resolver, scanner = build_scanner(settings, client)
    app.state.database = database
    app.state.resolver = resolver
    app.state.scanner = scanner

    try:
        yield
    finally:
        await client.aclose()
        await database.close()


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("scanbinder"),
    lifespan=lifespan,
)

app.include_router(collection_router)
app.include_router(health_router)
app.include_router(scan_router)
app.include_router(settings_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(KnownError)
async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    """Render a classified failure with its status code."""
    logger.warning("%s: %s (%s)", type(exc).__name__, exc.message, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=create_known_failure(exc).model_dump(mode="json"),
    )


@app.exception_handler(Exception)
async def unknown_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Anything unclassified still reaches the client inside the envelope."""
    logger.exception("Unhandled error")
    return JSONResponse(
        status_code=500,
        content=create_unknown_failure(exc).model_dump(mode="json"),
    )
