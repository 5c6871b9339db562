"""FastAPI route definitions for the shortlinks REST API.

This module provides all HTTP endpoints with dependency injection and
response serialization. Errors are raised as ``LinkError`` subclasses and
rendered by the handlers in ``shortlinks.errors``.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    POST /links                     X-API-KEY required
        ├─ LinkCreate (request body)
        └─ LinkCreated (201) or 400/401/409

    GET  /links?page=&size=
        └─ LinkPage (200)

    GET  /links/:alias
        └─ LinkDetails (200) or 404

    GET  /r/:alias
        └─ 302 Redirect, 404 or 410

Request Flow Diagram
====================
::
    ┌─────────────┐
    │  HTTP       │
    │  Request    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Validate &  │
    │ Parse       │
    │ (Pydantic)  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Inject      │
    │ Context &   │
    │ LinkService │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Call Service│
    │ Layer       │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Serialize   │
    │ Response    │
    └─────────────┘

How to Use
===========
**Create a link**::
    POST http://localhost:8080/links
    X-API-KEY: dev-key-123
    {"targetUrl": "https://google.com", "customAlias": "mario-long"}

**Redirect (do not follow)**::
    GET http://localhost:8080/r/mario-long   -> 302 Location: https://google.com

**Details**::
    GET http://localhost:8080/links/mario-long

Key Behaviours
===============
- 409 on POST /links means the alias already exists. Setup code that only
  needs the alias to exist can accept it as success.
- The redirect answers 302 and never follows the target itself.
- The details endpoint reads the store directly, so click counts are fresh.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from shortlinks.dependencies import RequestContext, get_link_service, get_request_context, require_api_key
from shortlinks.enums import HealthStatus
from shortlinks.link_service import LinkService
from shortlinks.schemas import ErrorResponse, HealthResponse, LinkCreate, LinkCreated, LinkDetails, LinkPage

__all__ = ["router"]

router = APIRouter()

_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    410: {"model": ErrorResponse},
}


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    store_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.DISABLED

    try:
        if not await ctx.store.ping():
            store_status = HealthStatus.UNHEALTHY
    except Exception as e:
        ctx.logger.error(f"Store health check failed: {e}")
        store_status = HealthStatus.UNHEALTHY

    if ctx.cache is not None:
        try:
            cache_status = HealthStatus.HEALTHY if await ctx.cache.ping() else HealthStatus.UNHEALTHY
        except Exception as e:
            ctx.logger.error(f"Cache health check failed: {e}")
            cache_status = HealthStatus.UNHEALTHY

    status = (
        HealthStatus.UNHEALTHY
        if HealthStatus.UNHEALTHY in (store_status, cache_status)
        else HealthStatus.HEALTHY
    )
    ctx.logger.debug(f"Health check completed: {status.value}")
    return HealthResponse(status=status, store=store_status, cache=cache_status)


@router.post(
    "/links",
    response_model=LinkCreated,
    status_code=201,
    tags=["links"],
    dependencies=[Depends(require_api_key)],
    responses={code: _ERRORS[code] for code in (400, 401, 409)},
)
async def create_link(
    payload: LinkCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> LinkCreated:
    ctx.add_tag("link_creation")
    ctx.logger.info(f"Link creation requested: {payload.target_url} (alias={payload.custom_alias})")

    record = await service.create_link(payload)

    ctx.logger.info(f"Link created: {record.alias} in {ctx.get_duration():.1f}ms")
    return LinkCreated.from_record(record, ctx.settings.redirect_base_url)


@router.get("/links", response_model=LinkPage, tags=["links"])
async def list_links(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> LinkPage:
    records, total = await service.list_links(page, size)
    base = ctx.settings.redirect_base_url
    return LinkPage.build(
        content=[LinkDetails.from_record(record, base) for record in records],
        page=page,
        size=size,
        total_elements=total,
    )


@router.get(
    "/links/{alias}",
    response_model=LinkDetails,
    tags=["links"],
    responses={404: _ERRORS[404]},
)
async def get_link_details(
    alias: str,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> LinkDetails:
    ctx.logger.info(f"Details requested for alias: {alias}")
    record = await service.get_link_details(alias)
    return LinkDetails.from_record(record, ctx.settings.redirect_base_url)


@router.get(
    "/r/{alias}",
    status_code=302,
    tags=["redirect"],
    response_class=RedirectResponse,
    responses={404: _ERRORS[404], 410: _ERRORS[410]},
)
async def redirect_to_target(
    alias: str,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> RedirectResponse:
    ctx.add_tag("redirect")

    record = await service.resolve_target(alias)

    ctx.logger.info(f"Redirect: {alias} -> {record.target_url} in {ctx.get_duration():.1f}ms")
    return RedirectResponse(url=record.target_url, status_code=302)
