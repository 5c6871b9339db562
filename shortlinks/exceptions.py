"""Domain exceptions raised by the link service and its dependencies.

Every exception carries the HTTP status and the error code it maps to, so the
handlers in ``shortlinks.errors`` can render a uniform ``ErrorResponse``.

Classes:
    LinkError:
        Base class for all client-visible link errors.

    AliasConflictError:
        Raised when a custom alias is already stored.

    AliasGenerationError:
        Raised when no free alias could be generated.

    UnauthorizedError:
        Raised when the X-API-KEY header is missing or wrong.

    LinkNotFoundError:
        Raised when an alias is unknown.

    LinkExpiredError:
        Raised when a redirect targets an expired link.

Example:
    >>> from shortlinks.exceptions import AliasConflictError
    >>> raise AliasConflictError("The custom alias is already in use: mario-long")
    Traceback (most recent call last):
        ...
    shortlinks.exceptions.AliasConflictError: The custom alias is already in use: mario-long
"""

from shortlinks.enums import ErrorCode

__all__ = [
    "LinkError",
    "AliasConflictError",
    "AliasGenerationError",
    "UnauthorizedError",
    "LinkNotFoundError",
    "LinkExpiredError",
]

class LinkError(Exception):
    """Generic base class for link-related exceptions."""

    status_code: int = 500
    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AliasConflictError(LinkError):
    status_code = 409
    code = ErrorCode.ALIAS_CONFLICT

class AliasGenerationError(LinkError):
    status_code = 503
    code = ErrorCode.ALIAS_UNAVAILABLE

class UnauthorizedError(LinkError):
    status_code = 401
    code = ErrorCode.UNAUTHORIZED

class LinkNotFoundError(LinkError):
    status_code = 404
    code = ErrorCode.NOT_FOUND

class LinkExpiredError(LinkError):
    """Exception raised when the link exists but its expiry has passed."""

    status_code = 410
    code = ErrorCode.EXPIRED_URL
