"""Unit tests for the Redis lookup cache."""

import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from shortlinks.cache import LinkCache
from shortlinks.schemas import CachedLinkPayload
from shortlinks.store import LinkRecord, utcnow


@pytest.fixture
def mock_redis() -> AsyncMock:
    client = AsyncMock()
    client.get = AsyncMock(return_value=None)
    client.setex = AsyncMock(return_value=True)
    client.ping = AsyncMock(return_value=True)
    return client


@pytest.fixture
def mock_logger() -> MagicMock:
    return MagicMock()


@pytest.fixture
def cache(mock_redis, mock_logger) -> LinkCache:
    return LinkCache(mock_redis, ttl_seconds=3600, logger=mock_logger)


def make_record(**kwargs) -> LinkRecord:
    kwargs.setdefault("created_at", utcnow())
    return LinkRecord(alias="mario-long", target_url="https://google.com", **kwargs)


@pytest.mark.asyncio
async def test_get_miss(cache, mock_redis) -> None:
    assert await cache.get("mario-long") is None
    mock_redis.get.assert_awaited_once_with("link:mario-long")


@pytest.mark.asyncio
async def test_get_hit(cache, mock_redis) -> None:
    record = make_record(expires_at=utcnow() + datetime.timedelta(days=1))
    mock_redis.get.return_value = CachedLinkPayload.model_validate(record).model_dump_json()

    assert await cache.get("mario-long") == record


@pytest.mark.asyncio
async def test_get_redis_error_is_a_miss(cache, mock_redis, mock_logger) -> None:
    mock_redis.get.side_effect = RedisConnectionError("down")

    assert await cache.get("mario-long") is None
    mock_logger.warning.assert_called_once()


@pytest.mark.asyncio
async def test_get_corrupt_payload_is_a_miss(cache, mock_redis, mock_logger) -> None:
    mock_redis.get.return_value = "{not json"

    assert await cache.get("mario-long") is None
    mock_logger.error.assert_called_once()


@pytest.mark.asyncio
async def test_set_uses_default_ttl(cache, mock_redis) -> None:
    await cache.set(make_record())

    key, ttl, _ = mock_redis.setex.await_args.args
    assert key == "link:mario-long"
    assert ttl == 3600


@pytest.mark.asyncio
async def test_set_caps_ttl_at_expiry(cache, mock_redis) -> None:
    await cache.set(make_record(expires_at=utcnow() + datetime.timedelta(minutes=10)))

    _, ttl, _ = mock_redis.setex.await_args.args
    assert 0 < ttl <= 600


@pytest.mark.asyncio
async def test_set_skips_expired(cache, mock_redis) -> None:
    await cache.set(make_record(expires_at=utcnow() - datetime.timedelta(seconds=5)))

    mock_redis.setex.assert_not_awaited()


@pytest.mark.asyncio
async def test_set_redis_error_is_logged(cache, mock_redis, mock_logger) -> None:
    mock_redis.setex.side_effect = RedisConnectionError("down")

    await cache.set(make_record())

    mock_logger.warning.assert_called_once()


@pytest.mark.asyncio
async def test_cached_payload_drops_click_statistics(cache, mock_redis) -> None:
    await cache.set(make_record(click_count=7, last_accessed_at=utcnow()))

    _, _, payload = mock_redis.setex.await_args.args
    assert "click_count" not in payload
    assert "last_accessed_at" not in payload


@pytest.mark.asyncio
async def test_ping_and_close(cache, mock_redis) -> None:
    assert await cache.ping()
    await cache.close()
    mock_redis.aclose.assert_awaited_once()
