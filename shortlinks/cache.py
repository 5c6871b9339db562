"""Redis lookup cache for the redirect hot path.

This module wraps a shared ``redis.asyncio`` client with the handful of
operations the link service needs: read-through lookups by alias and
population after a store hit or a create.

Flow Diagram - Cached Lookup
============================
::
    ┌─────────────┐
    │ cache.get() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ GET link:   │
    │ <alias>     │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Return  │  │ Decode  │
│ None    │  │ payload │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 - Build from settings**::
    cache = LinkCache.from_settings(settings, logger)

**Step 2 - Read and populate**::
    record = await cache.get("mario-long")
    if record is None:
        record = await store.get("mario-long")
        await cache.set(record)

**Step 3 - Cleanup on shutdown**::
    await cache.close()

Key Behaviours
===============
- The client is created lazily by redis-py; nothing connects at construction.
- Redis errors are logged and reported as a miss, so the store stays the
  source of truth when Redis is down.
- Entries never outlive the link: the TTL is capped at the time left before
  expires_at.
- UTF-8 encoding with decode_responses for string operations.

Classes:
    LinkCache:  Alias-keyed cache of CachedLinkPayload entries.
"""

import logging

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from shortlinks.config import Settings
from shortlinks.schemas import CachedLinkPayload
from shortlinks.store import LinkRecord, utcnow

__all__ = ["LinkCache"]

KEY_PREFIX = "link"


class LinkCache:
    def __init__(self, client: redis.Redis, ttl_seconds: int, logger: logging.Logger | logging.LoggerAdapter) -> None:
        self._client = client
        self._ttl_seconds = ttl_seconds
        self._logger = logger

    @classmethod
    def from_settings(cls, settings: Settings, logger: logging.Logger) -> "LinkCache":
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
        return cls(client, settings.CACHE_TTL_SECONDS, logger)

    @staticmethod
    def key(alias: str) -> str:
        return f"{KEY_PREFIX}:{alias}"

    async def get(self, alias: str) -> LinkRecord | None:
        try:
            cached = await self._client.get(self.key(alias))
        except RedisError as exc:
            self._logger.warning(f"Cache read failed for {alias}: {exc}")
            return None

        if not cached:
            return None

        try:
            return CachedLinkPayload.model_validate_json(cached).to_record()
        except ValidationError as exc:
            self._logger.error(f"Cache deserialization error for {alias}: {exc}")
            return None

    async def set(self, record: LinkRecord) -> None:
        ttl = self._ttl_seconds
        if record.expires_at is not None:
            remaining = int((record.expires_at - utcnow()).total_seconds())
            if remaining <= 0:
                return
            ttl = min(ttl, remaining)

        payload = CachedLinkPayload.model_validate(record)
        try:
            await self._client.setex(self.key(record.alias), ttl, payload.model_dump_json())
        except RedisError as exc:
            self._logger.warning(f"Cache write failed for {record.alias}: {exc}")

    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def close(self) -> None:
        await self._client.aclose()
