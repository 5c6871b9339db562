"""FastAPI application entry point for the shortlinks service.

This module configures and initializes the FastAPI application with middleware,
lifecycle management, exception handlers and route registration.

Application Lifecycle Diagram
=============================
::
    ┌──────────────┐
    │  uvicorn     │
    │  startup     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ Create       │
    │ FastAPI app  │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ CORS, error  │
    │ handlers,    │
    │ /metrics     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan()   │
    │ startup:     │
    │ store + cache│
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ Serve HTTP   │
    │ requests     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan()   │
    │ shutdown:    │
    │ cleanup()    │
    └──────────────┘

How to Use
===========
**Step 1 - Run with uvicorn**::
    uvicorn shortlinks.main:app --host 0.0.0.0 --port 8080

    # or the console script
    shortlinks

**Step 2 - Access interactive docs**::
    http://localhost:8080/docs

**Step 3 - Make API calls**::
    curl -X POST http://localhost:8080/links \
         -H "Content-Type: application/json" \
         -H "X-API-KEY: dev-key-123" \
         -d '{"targetUrl": "https://google.com", "customAlias": "mario-long"}'

    curl -i http://localhost:8080/r/mario-long

Key Behaviours
===============
- Tables are created on startup when the database backend is selected.
- The Redis client connects lazily on first use.
- CORS is enabled for all origins (configure for production).
- Prometheus metrics are exposed on /metrics.

Configuration:
    See shortlinks/config.py for all available settings.
"""

__all__ = ["app", "run"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from shortlinks.config import get_settings
from shortlinks.dependencies import _service_manager
from shortlinks.errors import register_exception_handlers
from shortlinks.routes import router

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    await _service_manager.initialize()
    yield
    await _service_manager.cleanup()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="URL shortener: create aliases, redirect, and inspect links",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_respect_env_var=False,
).instrument(app).expose(app)

app.include_router(router)


def run() -> None:
    uvicorn.run("shortlinks.main:app", host="0.0.0.0", port=8080)
