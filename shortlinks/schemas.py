"""Pydantic schemas for request/response validation in the shortlinks service.

This module defines Pydantic models for API input validation and output serialization,
ensuring type safety and automatic OpenAPI documentation generation. JSON field
names are camelCase on the wire (``targetUrl``, ``customAlias``) and snake_case
in Python.

Schema Hierarchy
=================
::
    LinkCreate (Input)
    ├─ targetUrl: str (absolute http/https URL)
    ├─ customAlias: str | None ([A-Za-z0-9_-], 3-50 chars)
    └─ expiresAt: datetime | None (future)

    LinkCreated (Output, 201)
    ├─ alias, shortUrl, targetUrl
    └─ createdAt, expiresAt

    LinkDetails (Output, 200)
    ├─ LinkCreated fields
    ├─ clickCount, lastAccessedAt
    └─ status: ACTIVE | EXPIRED

    LinkPage (Output, 200)
    └─ content: list[LinkDetails], page, size, totalElements, totalPages

    ErrorResponse (Output, 4xx/5xx)
    └─ code, message

How to Use
===========
**Step 1 - Input validation**::
    @router.post("/links")
    async def create_link(payload: LinkCreate):
        # payload is already validated
        ...

**Step 2 - Response serialization**::
    record = await service.get_link_details(alias)
    return LinkDetails.from_record(record, settings.redirect_base_url)

Key Behaviours
===============
- URL validation uses the validators library plus an explicit http/https
  scheme and host check.
- Target URLs are stored in ASCII form: IDNA host, percent-encoded path,
  query and fragment. The redirect Location is byte-for-byte the stored value.
- Naive expiresAt values are interpreted as UTC.
- All datetime fields in responses are timezone-aware.

Classes:
    LinkCreate:  Input schema for link creation.
    LinkCreated:  Output schema for created links.
    LinkDetails:  Output schema for the details and listing APIs.
    LinkPage:  Output schema for paged listings.
    ErrorResponse:  Output schema for every error.
    HealthResponse:  Output schema for health checks.
    CachedLinkPayload:  Redis cache payload for redirect lookups.
"""

import datetime
import math
import re
from urllib.parse import quote, urlsplit, urlunsplit

import validators
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from shortlinks.enums import ErrorCode, HealthStatus, LinkStatus
from shortlinks.store import LinkRecord, utcnow

__all__ = [
    "ALIAS_PATTERN",
    "LinkCreate",
    "LinkCreated",
    "LinkDetails",
    "LinkPage",
    "ErrorResponse",
    "HealthResponse",
    "CachedLinkPayload",
]

ALIAS_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
ALIAS_MIN_LENGTH = 3
ALIAS_MAX_LENGTH = 50
TARGET_URL_MAX_LENGTH = 2048
# Characters Starlette leaves unescaped when writing a Location header.
URL_SAFE_CHARS = ":/%#?=@[]!$&'()*+,;"


def to_ascii_url(url: str) -> str:
    """Return ``url`` with an IDNA host and every other non-ASCII character percent-encoded.

    Already-escaped sequences are kept, so applying it twice is a no-op.

    Raises:
        ValueError: If the host has no IDNA form.
    """
    parts = urlsplit(url)
    netloc = parts.netloc
    if netloc.isascii():
        return quote(url, safe=URL_SAFE_CHARS)

    try:
        host = parts.hostname.encode("idna").decode("ascii")
    except UnicodeError as exc:
        raise ValueError("URL must contain a valid host") from exc
    netloc = host if parts.port is None else f"{host}:{parts.port}"
    userinfo, at, _ = parts.netloc.rpartition("@")
    if at:
        netloc = f"{userinfo}@{netloc}"
    ascii_url = urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))
    return quote(ascii_url, safe=URL_SAFE_CHARS)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LinkCreate(CamelModel):
    target_url: str = Field(..., max_length=TARGET_URL_MAX_LENGTH)
    custom_alias: str | None = None
    expires_at: datetime.datetime | None = None

    @field_validator("target_url")
    @classmethod
    def validate_target_url(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("targetUrl is required")
        parts = urlsplit(v)
        if parts.scheme.lower() not in ("http", "https"):
            raise ValueError("URL must start with http or https")
        if not parts.hostname:
            raise ValueError("URL must contain a valid host")
        if not validators.url(v):
            raise ValueError("targetUrl is not a valid URL")
        v = to_ascii_url(v)
        if len(v) > TARGET_URL_MAX_LENGTH:
            raise ValueError(f"targetUrl must be at most {TARGET_URL_MAX_LENGTH} characters once encoded")
        return v

    @field_validator("custom_alias")
    @classmethod
    def validate_custom_alias(cls, v: str | None) -> str | None:
        if v is not None:
            if len(v) < ALIAS_MIN_LENGTH or len(v) > ALIAS_MAX_LENGTH:
                raise ValueError(
                    f"customAlias must be between {ALIAS_MIN_LENGTH} and {ALIAS_MAX_LENGTH} characters"
                )
            if not ALIAS_PATTERN.match(v):
                raise ValueError("customAlias can only contain letters, numbers, hyphens, and underscores")
        return v

    @field_validator("expires_at")
    @classmethod
    def validate_expires_at(cls, v: datetime.datetime | None) -> datetime.datetime | None:
        if v is None:
            return v
        if v.tzinfo is None:
            v = v.replace(tzinfo=datetime.timezone.utc)
        if v <= utcnow():
            raise ValueError("expiresAt must be in the future")
        return v


class LinkCreated(CamelModel):
    alias: str
    short_url: str
    target_url: str
    created_at: datetime.datetime
    expires_at: datetime.datetime | None

    @classmethod
    def from_record(cls, record: LinkRecord, redirect_base_url: str) -> "LinkCreated":
        return cls(
            alias=record.alias,
            short_url=f"{redirect_base_url}{record.alias}",
            target_url=record.target_url,
            created_at=record.created_at,
            expires_at=record.expires_at,
        )


class LinkDetails(CamelModel):
    alias: str
    short_url: str
    target_url: str
    created_at: datetime.datetime
    expires_at: datetime.datetime | None
    click_count: int
    last_accessed_at: datetime.datetime | None
    status: LinkStatus

    @classmethod
    def from_record(
        cls,
        record: LinkRecord,
        redirect_base_url: str,
        now: datetime.datetime | None = None,
    ) -> "LinkDetails":
        return cls(
            alias=record.alias,
            short_url=f"{redirect_base_url}{record.alias}",
            target_url=record.target_url,
            created_at=record.created_at,
            expires_at=record.expires_at,
            click_count=record.click_count,
            last_accessed_at=record.last_accessed_at,
            status=record.status(now),
        )


class LinkPage(CamelModel):
    content: list[LinkDetails]
    page: int
    size: int
    total_elements: int
    total_pages: int

    @classmethod
    def build(cls, content: list[LinkDetails], page: int, size: int, total_elements: int) -> "LinkPage":
        return cls(
            content=content,
            page=page,
            size=size,
            total_elements=total_elements,
            total_pages=math.ceil(total_elements / size) if size else 0,
        )


class ErrorResponse(BaseModel):
    code: ErrorCode
    message: str


class HealthResponse(BaseModel):
    status: HealthStatus
    store: HealthStatus
    cache: HealthStatus


class CachedLinkPayload(BaseModel):
    """Redis cache payload for the redirect hot path.

    Click statistics are not cached. The details API reads them from the store.
    """

    alias: str
    target_url: str
    created_at: datetime.datetime
    expires_at: datetime.datetime | None = None

    model_config = {"from_attributes": True}

    def to_record(self) -> LinkRecord:
        return LinkRecord(
            alias=self.alias,
            target_url=self.target_url,
            created_at=self.created_at,
            expires_at=self.expires_at,
        )
