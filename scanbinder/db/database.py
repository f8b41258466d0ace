"""
Database engine and session management.

A Database owns one async SQLAlchemy engine. The engine is opened on
first use and disposed by close(). The application creates exactly one
Database in its lifespan handler and hands sessions to store operations.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from scanbinder.models.db import Base

logger = logging.getLogger(__name__)


class Database:
    """Owned persistence handle with explicit open/close lifecycle."""

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self._url = url
        self._echo = echo
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def _open(self) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
        if self._engine is None or self._session_factory is None:
            logger.info("Opening database %s", self._url.split("://", 1)[0])
            self._engine = create_async_engine(self._url, echo=self._echo, pool_pre_ping=True)
            self._session_factory = async_sessionmaker(
                self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._engine, self._session_factory

    @property
    def engine(self) -> AsyncEngine:
        """Engine for this database, opened on first access."""
        return self._open()[0]

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._open()[1]

    async def init_db(self) -> None:
        """
        Initialize database tables.

        Creates all tables defined in the ORM models.
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_db(self) -> None:
        """
        Drop all database tables.

        WARNING: Destroys all data. Use only for testing.
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Provide a session that commits on success and rolls back on error.

        Usage:
            async with database.session() as session:
                await add_entry(session, ...)
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError:
                await session.rollback()
                raise

    async def close(self) -> None:
        """Dispose of the engine. The next use reopens it."""
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("Closed database")
        self._engine = None
        self._session_factory = None


def get_database(request: Request) -> Database:
    """Dependency returning the Database owned by the running application."""
    database: Database = request.app.state.database
    return database


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides a database session.

    Usage in FastAPI:
        @app.get("/items")
        async def get_items(session: AsyncSession = Depends(get_session)):
            ...
    """
    async with get_database(request).session() as session:
        yield session
