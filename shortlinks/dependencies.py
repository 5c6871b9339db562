"""Dependency injection with a singleton service manager.

This module provides a centralized way to inject the link store, the lookup
cache, settings and a request-scoped logger into every endpoint, using a
singleton for shared resources to minimize per-request overhead.
"""

import hmac
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Header, Request

from shortlinks.cache import LinkCache
from shortlinks.config import Settings, get_settings
from shortlinks.enums import StorageBackend
from shortlinks.exceptions import UnauthorizedError
from shortlinks.link_service import LinkService
from shortlinks.store import InMemoryLinkStore, LinkStore, SqlAlchemyLinkStore

API_KEY_HEADER = "X-API-KEY"


# ============================================================================
# SINGLETON SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Singleton service manager for shared resources.

    Holds everything that lives for the whole process: settings, the logger,
    the link store and the optional Redis cache.
    """

    _instance: Optional["ServiceManager"] = None
    _initialized: bool = False

    def __new__(cls) -> "ServiceManager":
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def initialize(
        self,
        settings: Settings | None = None,
        store: LinkStore | None = None,
        cache: LinkCache | None = None,
    ) -> None:
        """Initialize shared resources once at startup.

        ``store`` and ``cache`` override what settings would build. An
        explicit ``store`` without ``cache`` runs without a cache.
        """
        if self._initialized:
            return

        self.settings = settings or get_settings()
        self.logger = self._setup_logger()
        if store is not None:
            self.store = store
            self.cache = cache
        else:
            self.store = self._setup_store()
            self.cache = cache or self._setup_cache()
        await self.store.initialize()
        self._initialized = True
        self.logger.info(
            f"Service manager ready: store={type(self.store).__name__}, "
            f"cache={'enabled' if self.cache is not None else 'disabled'}"
        )

    def _setup_logger(self) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger(self.settings.APP_NAME)
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(self.settings.LOG_LEVEL.upper())
        return logger

    def _setup_store(self) -> LinkStore:
        if self.settings.STORAGE_BACKEND is StorageBackend.MEMORY:
            return InMemoryLinkStore()
        return SqlAlchemyLinkStore.from_settings(self.settings)

    def _setup_cache(self) -> LinkCache | None:
        if not self.settings.CACHE_ENABLED or not self.settings.REDIS_URL:
            return None
        return LinkCache.from_settings(self.settings, self.logger)

    async def cleanup(self) -> None:
        """Cleanup shared resources at shutdown."""
        if getattr(self, "cache", None) is not None:
            await self.cache.close()
        if getattr(self, "store", None) is not None:
            await self.store.close()
        self.cache = None
        self.store = None
        self._initialized = False


# Global singleton instance
_service_manager = ServiceManager()


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Request context with tracking and shared resource access.

    Attributes:
        service_manager: Singleton service manager with shared resources
        request_id: Unique identifier for this request
        trace_id: Correlation ID for distributed tracing
        user_agent: Client user agent string
        client_ip: Client IP address
        start_time: Request start timestamp
        tags: Request tags for categorization
    """

    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    trace_id: Optional[str] = None
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=lambda: time.time())
    tags: list[str] = field(default_factory=list)

    @property
    def store(self) -> LinkStore:
        return self.service_manager.store

    @property
    def cache(self) -> LinkCache | None:
        return self.service_manager.cache

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Get shared logger with request context."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "trace_id": self.trace_id or self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
                "tags": ",".join(self.tags),
            },
        )

    def add_tag(self, tag: str) -> None:
        if tag not in self.tags:
            self.tags.append(tag)

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    if not _service_manager._initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_request_context(
    request: Request,
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    client_ip = request.client.host if request.client else None

    return RequestContext(
        service_manager=manager,
        trace_id=request.headers.get("x-trace-id"),
        user_agent=request.headers.get("user-agent"),
        client_ip=client_ip,
    )


def get_link_service(ctx: RequestContext = Depends(get_request_context)) -> LinkService:
    return LinkService.from_context(ctx)


async def require_api_key(
    x_api_key: Optional[str] = Header(None, alias=API_KEY_HEADER),
    ctx: RequestContext = Depends(get_request_context),
) -> None:
    """Reject the request unless X-API-KEY matches the configured key.

    Raises:
        UnauthorizedError: Missing header, unconfigured key, or mismatch.
    """
    if not x_api_key or not x_api_key.strip():
        ctx.logger.warning(f"Missing API key for {API_KEY_HEADER}")
        raise UnauthorizedError(f"Missing API key in {API_KEY_HEADER} header")

    expected = ctx.settings.API_KEY
    if not expected or not expected.strip():
        ctx.logger.error("API key is not configured")
        raise UnauthorizedError("API key configuration is missing")

    if not hmac.compare_digest(expected.encode("utf-8"), x_api_key.encode("utf-8")):
        ctx.logger.warning("Invalid API key provided")
        raise UnauthorizedError("Invalid API key")
