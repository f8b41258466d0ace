from collections.abc import AsyncGenerator

import pytest
from fakes import FakeRecognition, fake_adapters, make_image_bytes
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from scanbinder.catalogs.resolver import CatalogResolver
from scanbinder.db.database import Database
from scanbinder.main import app
from scanbinder.services.scanner import CardScanner


@pytest.fixture
async def database() -> AsyncGenerator[Database, None]:
    """In-memory SQLite database with tables created."""
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.init_db()
    yield db
    await db.drop_db()
    await db.close()


@pytest.fixture
async def session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for tests."""
    async with database.session_factory() as session:
        yield session


@pytest.fixture
def card_image() -> bytes:
    return make_image_bytes()


@pytest.fixture
def recognition() -> FakeRecognition:
    """Recognition stub; tests set .result or .error as needed."""
    return FakeRecognition()


@pytest.fixture
def resolver() -> CatalogResolver:
    return CatalogResolver(fake_adapters())


@pytest.fixture
async def client(
    database: Database, recognition: FakeRecognition, resolver: CatalogResolver
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async test client against the app with test collaborators on app.state.

    ASGITransport does not run the lifespan, so state is set directly.
    """
    app.state.database = database
    app.state.resolver = resolver
    app.state.scanner = CardScanner(recognition, resolver)  # type: ignore[arg-type]

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
