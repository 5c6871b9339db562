"""Details endpoint behavior tests."""

import datetime
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from shortlinks.main import app
from shortlinks.store import InMemoryLinkStore, LinkRecord, utcnow


@pytest.mark.asyncio
async def test_details_after_create(client: AsyncClient, auth_headers: dict[str, str]) -> None:
    await client.post(
        "/links",
        json={"targetUrl": "https://google.com", "customAlias": "mario-long"},
        headers=auth_headers,
    )

    response = await client.get("/links/mario-long")
    assert response.status_code == 200
    data = response.json()
    assert data["alias"] == "mario-long"
    assert data["targetUrl"] == "https://google.com"
    assert data["shortUrl"] == "http://test/r/mario-long"
    assert data["clickCount"] == 0
    assert data["lastAccessedAt"] is None
    assert data["status"] == "ACTIVE"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "target_url",
    [
        "https://example.com",
        "http://example.com/path/to/page?q=1&lang=en",
        "https://sub.domain.example.org:8443/a/b#frag",
    ],
)
async def test_details_echo_target_url(client: AsyncClient, auth_headers: dict[str, str], target_url: str) -> None:
    create_resp = await client.post("/links", json={"targetUrl": target_url}, headers=auth_headers)
    alias = create_resp.json()["alias"]

    response = await client.get(f"/links/{alias}")
    assert response.status_code == 200
    assert response.json()["targetUrl"] == target_url


@pytest.mark.asyncio
async def test_details_unknown_alias(client: AsyncClient) -> None:
    response = await client.get("/links/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"code": "NOT_FOUND", "message": "Short URL not found"}


@pytest.mark.asyncio
async def test_details_expired_link(client: AsyncClient, store: InMemoryLinkStore) -> None:
    now = utcnow()
    await store.put_if_absent(
        LinkRecord(
            alias="old-link",
            target_url="https://example.com",
            created_at=now - datetime.timedelta(days=30),
            expires_at=now - datetime.timedelta(days=1),
        )
    )

    response = await client.get("/links/old-link")
    assert response.status_code == 200
    assert response.json()["status"] == "EXPIRED"


@pytest.mark.asyncio
async def test_details_store_failure_is_internal_error(client: AsyncClient, store: InMemoryLinkStore) -> None:
    store.get = AsyncMock(side_effect=RuntimeError("connection reset"))

    # the catch-all handler answers, then Starlette re-raises the original error
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as raw_client:
        response = await raw_client.get("/links/abc")

    assert response.status_code == 500
    assert response.json() == {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"}
