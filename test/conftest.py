"""
Pytest configuration and fixtures.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Generator
from typing import Any, Awaitable, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from contactbook.config import Settings, get_settings
from contactbook.contacts.schema import init_schema
from contactbook.contacts.schemas import ContactResponse
from contactbook.contacts.service import ContactService
from contactbook.main import app
from contactbook.shared.database import enable_sqlite_transactions, get_db_session

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Settings are cached per process; tests that patch env need a fresh read."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        app_env="dev",
        debug=True,
        database_url=TEST_DATABASE_URL,
    )


@pytest_asyncio.fixture
async def db_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Create an isolated in-memory store with the schema initialised."""
    engine = create_async_engine(
        test_settings.database_url,
        echo=False,
        poolclass=StaticPool,
    )
    enable_sqlite_transactions(engine)
    await init_schema(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    session_factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
def contact_service(db_session: AsyncSession) -> ContactService:
    return ContactService(session=db_session)


@pytest.fixture
def make_contact(
    contact_service: ContactService,
) -> Callable[..., Awaitable[ContactResponse]]:
    """Factory creating a stored contact with sensible defaults."""

    async def _make(first_name: str = "Ada", last_name: str = "Lovelace", **fields: Any) -> ContactResponse:
        return await contact_service.create_contact(
            {"first_name": first_name, "last_name": last_name, **fields}
        )

    return _make


@pytest_asyncio.fixture
async def async_client(
    db_session: AsyncSession,
) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API tests."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
