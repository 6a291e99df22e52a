"""
Error Classifier

Maps an HTTP status code (plus the server's message, if any) to the error
taxonomy in typesense_dispatch.core.exceptions.
"""

from __future__ import annotations

from typing import Final

from typesense_dispatch.core.exceptions import (
    HTTPError,
    ObjectAlreadyExists,
    ObjectNotFound,
    ObjectUnprocessable,
    RequestMalformed,
    RequestUnauthorized,
    ServerError,
    TypesenseError,
)

ERRORS_BY_STATUS: Final[dict[int, type[TypesenseError]]] = {
    400: RequestMalformed,
    401: RequestUnauthorized,
    404: ObjectNotFound,
    409: ObjectAlreadyExists,
    422: ObjectUnprocessable,
}


def classify_error(status_code: int, message_from_server: str | None = None) -> TypesenseError:
    """Build the error for a non-2xx response.

    Args:
        status_code: HTTP status of the response.
        message_from_server: ``message`` field of the JSON body, if any.

    Returns:
        Error instance carrying ``http_status``; its message is
        ``Request failed with HTTP code <status>``, followed by
        `` | Server said: <message>`` when the server sent a non-blank one.

    Example:
        >>> str(classify_error(404, "Not Found"))
        'Request failed with HTTP code 404 | Server said: Not Found'
    """
    message = f"Request failed with HTTP code {status_code}"
    if isinstance(message_from_server, str) and message_from_server.strip():
        message += f" | Server said: {message_from_server}"

    error_class = ERRORS_BY_STATUS.get(status_code)
    if error_class is None:
        error_class = ServerError if 500 <= status_code <= 599 else HTTPError

    return error_class(message, http_status=status_code)
