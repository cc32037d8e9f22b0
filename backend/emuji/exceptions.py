"""
Emuji Backend: Custom Exception Hierarchy
============================================

What:  Application-specific exceptions for the failure modes of the service.
How:   Each exception class carries a client-safe message and an optional
       context dict. Exception handlers registered in main.py catch these and
       return plain-text responses with the matching HTTP status code.
Who:   Raised by the service layer and the pool wrapper; caught by global handlers.

Exception Hierarchy:
    EmujiError (base)
    ├── ValidationError          → 400 Bad Request
    ├── NotFoundError            → 404 Not Found
    └── DatabaseError            → 500 Internal Server Error
        ├── PoolTimeoutError     → no free pooled connection within the acquire timeout
        └── QueryError           → the statement itself failed

The original driver exception is always chained (`raise ... from exc`), so
logs keep its type and traceback while the client only sees `message`.
"""

from typing import Any, Dict, Optional


class EmujiError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(EmujiError):
    """
    Raised when client input fails validation.

    When:    POST / with vote recording enabled and a body that is not a vote.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "invalid vote",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(EmujiError):
    """
    Raised when a lookup matched no rows.

    When:    GET /{spotify_uri} for a track that has no emuji.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource_id = resource_id


class DatabaseError(EmujiError):
    """
    Raised when a database operation fails.

    HTTP:    500 Internal Server Error

    The message is chosen by the caller ("unable to fetch emujis", ...) and is
    the exact body returned to the client. `action` names what was being
    attempted ("fetch emujis") for the server log. Driver details stay in
    `context`.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        action: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.action = action


class PoolTimeoutError(DatabaseError):
    """
    Raised when no pooled connection became free within the acquire timeout.

    All connections are checked out by other requests; the pool waited
    `db_acquire_timeout_ms` and gave up.
    """


class QueryError(DatabaseError):
    """Raised when a statement failed (bad SQL, constraint violation, lost connection)."""
