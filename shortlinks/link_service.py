"""Link Service Layer - Core Business Logic

This module provides the service layer behind the three public link
operations: shorten, redirect and details, plus the paged listing.

Architecture Overview
=====================
::
    ┌──────────────────────────────────────────────────────────┐
    │                     LinkService                          │
    │  • create_link()       • resolve_target()                │
    │  • get_link_details()  • list_links()                    │
    └──────────────────────────────────────────────────────────┘
                │                                │
                ▼                                ▼
    ┌─────────────────────┐          ┌─────────────────────┐
    │      LinkStore      │          │   LinkCache (opt.)  │
    │ memory / PostgreSQL │          │       Redis         │
    └─────────────────────┘          └─────────────────────┘

Request Flow Diagrams
=====================

Link Creation Flow
------------------
::
    ┌─────────────┐
    │ POST /links │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ customAlias │
    │ given?      │
    └──────┬──────┘
    ┌─────┴─────┐
    │ YES        │ NO
    ▼            ▼
┌─────────┐  ┌───────────┐
│ put_if_ │  │ nanoid +  │
│ absent  │  │ put_if_   │
│ once    │  │ absent,   │
│         │  │ retry     │
└────┬────┘  └─────┬─────┘
     │ False       │
     ▼             ▼
┌─────────┐  ┌───────────┐
│ 409     │  │ cache set │
│ conflict│  │ 201       │
└─────────┘  └───────────┘

Redirect Flow
-------------
::
    ┌─────────────┐
    │ GET /r/:a   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Cache, then │
    │ store       │
    └──────┬──────┘
    FOUND? │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ 404     │  │ Expired?│──YES──> 410
└─────────┘  └────┬────┘
                  ▼ NO
            ┌───────────┐
            │ register  │
            │ click,302 │
            └───────────┘

Usage Examples
==============

Basic Service Usage
-------------------
```python
@router.post("/links")
async def create_link(
    payload: LinkCreate,
    service: LinkService = Depends(get_link_service),
) -> LinkCreated:
    record = await service.create_link(payload)
    return LinkCreated.from_record(record, service.settings.redirect_base_url)
```
"""

import datetime
import time
from typing import TYPE_CHECKING

from nanoid import generate
from prometheus_client import Counter, Histogram

from shortlinks.cache import LinkCache
from shortlinks.config import Settings
from shortlinks.enums import CacheStatus, RequestStatus
from shortlinks.exceptions import AliasConflictError, AliasGenerationError, LinkExpiredError, LinkNotFoundError
from shortlinks.schemas import LinkCreate
from shortlinks.store import LinkRecord, LinkStore, utcnow

if TYPE_CHECKING:
    from shortlinks.dependencies import RequestContext

__all__ = ["ALIAS_ALPHABET", "LinkService", "generate_alias"]


# ============================================================================
# CONSTANTS
# ============================================================================

ALIAS_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

LINK_CREATION_REQUESTS_TOTAL = Counter(
    "shortlinks_creation_requests_total",
    "Total link creation requests",
    ["status"],
)
LINK_LOOKUP_REQUESTS_TOTAL = Counter(
    "shortlinks_lookup_requests_total",
    "Total alias lookups for redirects",
    ["status", "cache_hit"],
)
LINK_REDIRECTS_TOTAL = Counter(
    "shortlinks_redirects_total",
    "Total redirects issued",
)
ALIAS_COLLISIONS_TOTAL = Counter(
    "shortlinks_generated_alias_collisions_total",
    "Generated aliases that were already taken",
)

LINK_CREATION_DURATION = Histogram(
    "shortlinks_creation_duration_seconds",
    "Time taken to create links",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)
LINK_LOOKUP_DURATION = Histogram(
    "shortlinks_lookup_duration_seconds",
    "Time taken to resolve an alias for a redirect",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25],
)


def generate_alias(length: int) -> str:
    if length <= 0:
        raise ValueError("Alias length must be positive")
    return generate(ALIAS_ALPHABET, length)


# ============================================================================
# CORE SERVICE CLASS
# ============================================================================


class LinkService:
    """Core service class for link operations.

    The service owns no state of its own. The store, cache, settings and
    logger all come from the request context.

    Example:
        >>> service = LinkService.from_context(ctx)
        >>> record = await service.create_link(LinkCreate(target_url="https://google.com"))
        >>> print(record.alias)
    """

    def __init__(self, ctx: "RequestContext"):
        self._store: LinkStore = ctx.store
        self._cache: LinkCache | None = ctx.cache
        self._logger = ctx.logger
        self._settings = ctx.settings
        self._ctx = ctx

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "LinkService":
        return cls(ctx)

    @property
    def settings(self) -> Settings:
        return self._settings

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def create_link(self, request: LinkCreate) -> LinkRecord:
        """Create and store a new link.

        Args:
            request: Validated creation payload.

        Returns:
            LinkRecord: The stored record.

        Raises:
            AliasConflictError: If the custom alias is already stored. Callers
                seeding fixtures may treat this as success.
            AliasGenerationError: If every generated alias collided.
        """
        start_time = time.perf_counter()
        now = utcnow()
        expires_at = request.expires_at or self._default_expiry(now)

        try:
            if request.custom_alias:
                record = await self._insert_custom(request, now, expires_at)
            else:
                record = await self._insert_generated(request, now, expires_at)
        except AliasConflictError as exc:
            LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.CONFLICT).inc()
            self._logger.warning(f"Link creation conflict: {exc}")
            raise
        except Exception as exc:
            LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Link creation error: {exc}")
            raise
        finally:
            LINK_CREATION_DURATION.observe(time.perf_counter() - start_time)

        if self._cache is not None:
            await self._cache.set(record)

        LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.info(f"Link created: {record.alias} -> {record.target_url}")
        return record

    async def resolve_target(self, alias: str) -> LinkRecord:
        """Resolve an alias for a redirect and register the click.

        Raises:
            LinkNotFoundError: Unknown alias.
            LinkExpiredError: The link exists but has expired.
        """
        start_time = time.perf_counter()
        now = utcnow()

        try:
            record, cache_status = await self._lookup(alias)
        finally:
            LINK_LOOKUP_DURATION.observe(time.perf_counter() - start_time)

        if record is None:
            LINK_LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND, cache_hit=cache_status).inc()
            raise LinkNotFoundError("Short URL not found")

        if record.is_expired(now):
            LINK_LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.EXPIRED, cache_hit=cache_status).inc()
            raise LinkExpiredError("Short URL has expired")

        if not await self._store.register_click(alias, now):
            LINK_LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND, cache_hit=cache_status).inc()
            raise LinkNotFoundError("Short URL not found")

        LINK_LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS, cache_hit=cache_status).inc()
        LINK_REDIRECTS_TOTAL.inc()
        return record

    async def get_link_details(self, alias: str) -> LinkRecord:
        """Return the stored record, click statistics included.

        Always reads the store; the cache holds no click statistics.

        Raises:
            LinkNotFoundError: Unknown alias.
        """
        record = await self._store.get(alias)
        if record is None:
            raise LinkNotFoundError("Short URL not found")
        return record

    async def list_links(self, page: int, size: int) -> tuple[list[LinkRecord], int]:
        records = await self._store.list_recent(offset=page * size, limit=size)
        total = await self._store.count()
        return records, total

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    def _default_expiry(self, now: datetime.datetime) -> datetime.datetime | None:
        if self._settings.DEFAULT_TTL_DAYS <= 0:
            return None
        return now + datetime.timedelta(days=self._settings.DEFAULT_TTL_DAYS)

    async def _insert_custom(
        self,
        request: LinkCreate,
        now: datetime.datetime,
        expires_at: datetime.datetime | None,
    ) -> LinkRecord:
        record = LinkRecord(
            alias=request.custom_alias,
            target_url=request.target_url,
            created_at=now,
            expires_at=expires_at,
        )
        if not await self._store.put_if_absent(record):
            raise AliasConflictError(f"The custom alias is already in use: {request.custom_alias}")
        return record

    async def _insert_generated(
        self,
        request: LinkCreate,
        now: datetime.datetime,
        expires_at: datetime.datetime | None,
    ) -> LinkRecord:
        for _ in range(self._settings.ALIAS_GENERATION_ATTEMPTS):
            record = LinkRecord(
                alias=generate_alias(self._settings.ALIAS_LENGTH),
                target_url=request.target_url,
                created_at=now,
                expires_at=expires_at,
            )
            if await self._store.put_if_absent(record):
                return record
            ALIAS_COLLISIONS_TOTAL.inc()
            self._logger.debug(f"Generated alias collided: {record.alias}")

        raise AliasGenerationError("Could not allocate a free alias, try again")

    async def _lookup(self, alias: str) -> tuple[LinkRecord | None, CacheStatus]:
        if self._cache is not None:
            cached = await self._cache.get(alias)
            if cached is not None:
                return cached, CacheStatus.HIT

        record = await self._store.get(alias)
        if record is not None and self._cache is not None:
            await self._cache.set(record)
        return record, CacheStatus.MISS
