"""Shared pytest fixtures for API, store, cache and service tests."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from shortlinks.config import Settings
from shortlinks.dependencies import _service_manager
from shortlinks.enums import StorageBackend
from shortlinks.main import app
from shortlinks.store import InMemoryLinkStore

API_KEY = "test-key"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        API_KEY=API_KEY,
        BASE_URL="http://test",
        STORAGE_BACKEND=StorageBackend.MEMORY,
        CACHE_ENABLED=False,
    )


@pytest.fixture
def store() -> InMemoryLinkStore:
    return InMemoryLinkStore()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"X-API-KEY": API_KEY}


@pytest_asyncio.fixture(scope="function")
async def client(settings: Settings, store: InMemoryLinkStore) -> AsyncGenerator[AsyncClient, None]:
    await _service_manager.cleanup()
    await _service_manager.initialize(settings=settings, store=store)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await _service_manager.cleanup()
