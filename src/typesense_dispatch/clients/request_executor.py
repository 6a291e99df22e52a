"""
Request Executor

Performs exactly one HTTP attempt against a chosen node, applies the
per-attempt deadline, updates the node's health and classifies the outcome.

Outcome contract:
- 2xx: decoded body is returned (JSON when declared, else text)
- 3xx/4xx: classified error raised; the node counts as healthy
- 5xx, status 0, timeouts and transport failures: node marked unhealthy and
  a retryable error (ServerError / NodeConnectionError) raised
- caller abort: RequestAbortedError, node health untouched

Patterns Applied:
- Connection pooling: the shared httpx.AsyncClient is injected, never
  created per attempt
- httpx transport exceptions chained with ``raise ... from``
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping
from typing import Any, Final

import httpx

from typesense_dispatch.clients.error_classifier import classify_error
from typesense_dispatch.clients.node_registry import HEALTHY, UNHEALTHY, Node, NodeRegistry
from typesense_dispatch.core.exceptions import NodeConnectionError, RequestAbortedError
from typesense_dispatch.core.logging import get_logger

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

API_KEY_HEADER_NAME: Final[str] = "X-TYPESENSE-API-KEY"
API_KEY_QUERY_PARAM_NAME: Final[str] = "x-typesense-api-key"
JSON_CONTENT_TYPE: Final[str] = "application/json"
ABORTED_MESSAGE: Final[str] = "Request aborted by caller."


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_query_value(item) for item in value)
    return str(value)


class RequestExecutor:
    """Runs single attempts on behalf of the retry loop.

    Attributes:
        registry: Node records whose health this executor updates.
        connection_timeout_seconds: Deadline for one attempt when the caller
            supplies no abort signal.
        send_api_key_as_query_param: Put the API key in the query string.
    """

    def __init__(
        self,
        registry: NodeRegistry,
        http_client: httpx.AsyncClient,
        *,
        api_key: str,
        connection_timeout_seconds: float,
        send_api_key_as_query_param: bool = False,
        additional_headers: Mapping[str, str] | None = None,
    ) -> None:
        self.registry = registry
        self._client = http_client
        self._api_key = api_key
        self.connection_timeout_seconds = connection_timeout_seconds
        self.send_api_key_as_query_param = send_api_key_as_query_param
        self._additional_headers = dict(additional_headers or {})

    async def execute(
        self,
        method: str,
        node: Node,
        endpoint: str,
        *,
        query_parameters: Mapping[str, Any] | None = None,
        body_parameters: Any = None,
        additional_headers: Mapping[str, str] | None = None,
        abort_signal: asyncio.Event | None = None,
        request_number: int = 0,
    ) -> Any:
        """Perform one attempt.

        Args:
            method: HTTP verb.
            node: Node chosen by the selector.
            endpoint: Path relative to the node, e.g. ``/collections``.
            query_parameters: Query string parameters.
            body_parameters: Mapping/sequence (JSON-encoded) or str/bytes
                (sent verbatim). Empty bodies are omitted.
            additional_headers: Per-call headers.
            abort_signal: Caller cancellation. Replaces the internal deadline.
            request_number: Identifier of the logical call, for logs.

        Returns:
            Decoded response body.

        Raises:
            RequestAbortedError: If the signal is set before or during the attempt.
            ServerError: On 5xx (retryable).
            NodeConnectionError: On transport failure or timeout (retryable).
            TypesenseError: Classified 3xx/4xx error (terminal).
        """
        if abort_signal is not None and abort_signal.is_set():
            raise RequestAbortedError(ABORTED_MESSAGE)

        request = self._client.build_request(
            method,
            node.uri_for(endpoint),
            params=self.build_query_parameters(query_parameters),
            headers=self.build_headers(additional_headers),
            content=self.encode_body(body_parameters),
        )

        try:
            response = await self._send(request, abort_signal)
            is_json = response.headers.get("content-type", "").startswith(JSON_CONTENT_TYPE)
            body = response.json() if is_json else None
        except (httpx.HTTPError, asyncio.TimeoutError, ValueError) as e:
            self.registry.set_health(node.index, UNHEALTHY)
            raise NodeConnectionError(
                f"Request to {node.label} failed: {type(e).__name__} {e}"
            ) from e

        return self._process_response(node, response, body, is_json, request_number)

    async def _send(
        self,
        request: httpx.Request,
        abort_signal: asyncio.Event | None,
    ) -> httpx.Response:
        if abort_signal is None:
            return await asyncio.wait_for(
                self._client.send(request),
                timeout=self.connection_timeout_seconds,
            )

        send_task = asyncio.ensure_future(self._client.send(request))
        abort_task = asyncio.ensure_future(abort_signal.wait())
        try:
            done, _ = await asyncio.wait(
                {send_task, abort_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (send_task, abort_task):
                if not task.done():
                    task.cancel()

        if send_task in done:
            return send_task.result()
        raise RequestAbortedError(ABORTED_MESSAGE)

    def _process_response(
        self,
        node: Node,
        response: httpx.Response,
        body: Any,
        is_json: bool,
        request_number: int,
    ) -> Any:
        status = response.status_code

        # Status 0 is what some transports report for a non-HTTP failure, so
        # it is never evidence of liveness.
        if 1 <= status <= 499:
            self.registry.set_health(node.index, HEALTHY)
        logger.debug(
            "request_completed",
            request_number=request_number,
            node=node.label,
            status_code=status,
        )

        if 200 <= status < 300:
            return body if is_json else response.text

        message = body.get("message") if isinstance(body, dict) else None
        if status == 0:
            self.registry.set_health(node.index, UNHEALTHY)
            raise NodeConnectionError(
                f"Request to {node.label} returned no HTTP status",
                http_status=status,
            )
        if status < 500:
            raise classify_error(status, message)

        self.registry.set_health(node.index, UNHEALTHY)
        raise classify_error(status, message)

    def build_headers(self, additional_headers: Mapping[str, str] | None = None) -> httpx.Headers:
        """Default headers, then per-call headers, then configured headers."""
        headers = httpx.Headers()
        if not self.send_api_key_as_query_param:
            headers[API_KEY_HEADER_NAME] = self._api_key
        headers["Content-Type"] = JSON_CONTENT_TYPE
        for key, value in (additional_headers or {}).items():
            headers[key] = value
        for key, value in self._additional_headers.items():
            headers[key] = value
        return headers

    def build_query_parameters(self, query_parameters: Mapping[str, Any] | None = None) -> dict[str, str]:
        params = {key: _query_value(value) for key, value in (query_parameters or {}).items()}
        if self.send_api_key_as_query_param:
            params[API_KEY_QUERY_PARAM_NAME] = self._api_key
        return params

    @staticmethod
    def encode_body(body_parameters: Any) -> str | bytes | None:
        """Encode a request body; empty or missing bodies become None."""
        if isinstance(body_parameters, (str, bytes)):
            return body_parameters or None
        if body_parameters:
            return json.dumps(body_parameters)
        return None
