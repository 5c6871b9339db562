"""Shared enums for the shortlinks service.

This module defines all status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "LinkStatus", "RequestStatus", "CacheStatus", "StorageBackend", "ErrorCode"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DISABLED = "disabled"


class LinkStatus(StrEnum):
    """Lifecycle status reported by the details API."""

    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"


class RequestStatus(StrEnum):
    """Request status values for metrics and logging."""

    SUCCESS = "success"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    ERROR = "error"


class CacheStatus(StrEnum):
    """Cache status values for metrics."""

    HIT = "true"
    MISS = "false"


class StorageBackend(StrEnum):
    """Link store implementations selectable through settings."""

    MEMORY = "memory"
    DATABASE = "database"


class ErrorCode(StrEnum):
    """Machine-readable codes carried by every error response."""

    INVALID_URL = "INVALID_URL"
    INVALID_ALIAS = "INVALID_ALIAS"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    ALIAS_CONFLICT = "ALIAS_CONFLICT"
    ALIAS_UNAVAILABLE = "ALIAS_UNAVAILABLE"
    NOT_FOUND = "NOT_FOUND"
    EXPIRED_URL = "EXPIRED_URL"
    INTERNAL_ERROR = "INTERNAL_ERROR"
