"""
typesense-dispatch - Custom Exceptions

Error taxonomy surfaced by the request dispatcher.

Patterns Applied:
- Custom namespaced exceptions: every class derives from TypesenseError and
  never shadows builtins (DocumentImportError, not ImportError;
  NodeConnectionError, not ConnectionError)
- Every HTTP-derived error carries the numeric status as ``http_status``
"""

from __future__ import annotations

from typing import Any


class TypesenseError(Exception):
    """Base exception for typesense-dispatch.

    All custom exceptions inherit from this base class.

    Attributes:
        message: Human-readable error description.
        http_status: HTTP status code of the response that caused the error,
            or None when no response was received.
    """

    def __init__(self, message: str = "", http_status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.http_status = http_status

    def __str__(self) -> str:
        return self.message


# =============================================================================
# HTTP status errors
# =============================================================================


class HTTPError(TypesenseError):
    """Raised for HTTP failures without a more specific class (e.g. 403, 3xx)."""

    pass


class RequestMalformed(TypesenseError):
    """Raised on HTTP 400: the server rejected the request as malformed."""

    pass


class RequestUnauthorized(TypesenseError):
    """Raised on HTTP 401: missing or invalid API key."""

    pass


class ObjectNotFound(TypesenseError):
    """Raised on HTTP 404."""

    pass


class ObjectAlreadyExists(TypesenseError):
    """Raised on HTTP 409."""

    pass


class ObjectUnprocessable(TypesenseError):
    """Raised on HTTP 422."""

    pass


class ServerError(TypesenseError):
    """Raised on HTTP 5xx. Retryable: the dispatcher tries another node."""

    pass


# =============================================================================
# Non-HTTP errors
# =============================================================================


class MissingConfigurationError(TypesenseError):
    """Raised when configuration is invalid or missing.

    Raised eagerly, before any network attempt.
    """

    pass


class NodeConnectionError(TypesenseError):
    """Raised when a node could not be reached.

    Covers timeouts, refused connections, DNS failures and responses that
    carry no usable HTTP status. Retryable.
    """

    pass


class RequestAbortedError(TypesenseError):
    """Raised when the caller's abort signal is set. Terminal, never retried."""

    pass


class DocumentImportError(TypesenseError):
    """Raised when a bulk import partially fails.

    Attributes:
        import_results: Per-document results returned by the server, including
            the failed items.
    """

    def __init__(self, message: str, import_results: list[dict[str, Any]]) -> None:
        super().__init__(message)
        self.import_results = import_results


RETRYABLE_ERRORS: tuple[type[TypesenseError], ...] = (ServerError, NodeConnectionError)
