"""
ApiCall - Retry Coordinator and verb API

Entry point for every resource: ``get/post/put/patch/delete`` all funnel into
``perform_request``, which walks the cluster with bounded retries.

Patterns Applied:
- Connection pooling: one httpx.AsyncClient per ApiCall
- Fixed retry interval (no exponential backoff, no jitter); timing is part of
  the observable contract
- Repository Pattern: ApiCallProtocol for duck typing, FakeApiCall in
  typesense_dispatch.clients.fakes for tests
- One OpenTelemetry span per logical call
"""

from __future__ import annotations

import asyncio
import itertools
import time
from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

import httpx

from typesense_dispatch.clients.node_registry import NodeRegistry
from typesense_dispatch.clients.node_selector import NodeSelector
from typesense_dispatch.clients.request_executor import ABORTED_MESSAGE, RequestExecutor
from typesense_dispatch.core.config import Configuration
from typesense_dispatch.core.exceptions import RETRYABLE_ERRORS, RequestAbortedError
from typesense_dispatch.core.logging import get_logger
from typesense_dispatch.core.tracing import record_attempt, request_span

logger = get_logger(__name__)


# =============================================================================
# Protocol for Duck Typing (Repository Pattern)
# =============================================================================


@runtime_checkable
class ApiCallProtocol(Protocol):
    """Verb contract that resources depend on.

    Enables FakeApiCall for testing without real HTTP calls.
    """

    async def get(
        self,
        endpoint: str,
        query_parameters: Mapping[str, Any] | None = None,
        *,
        abort_signal: asyncio.Event | None = None,
    ) -> Any: ...

    async def post(
        self,
        endpoint: str,
        body_parameters: Any = None,
        query_parameters: Mapping[str, Any] | None = None,
        additional_headers: Mapping[str, str] | None = None,
    ) -> Any: ...

    async def put(
        self,
        endpoint: str,
        body_parameters: Any = None,
        query_parameters: Mapping[str, Any] | None = None,
    ) -> Any: ...

    async def patch(
        self,
        endpoint: str,
        body_parameters: Any = None,
        query_parameters: Mapping[str, Any] | None = None,
    ) -> Any: ...

    async def delete(
        self,
        endpoint: str,
        query_parameters: Mapping[str, Any] | None = None,
    ) -> Any: ...


# =============================================================================
# ApiCall Implementation
# =============================================================================


class ApiCall:
    """Resilient dispatcher for one Typesense cluster.

    Attributes:
        configuration: Validated client configuration.
        registry: Node health state shared by all calls.
        selector: Nearest-node-first, round-robin node selection.
        executor: Single-attempt HTTP executor.
        num_retries: Retries per request; total attempts = num_retries + 1.
        retry_interval_seconds: Fixed sleep between attempts.

    Example:
        >>> async with ApiCall(configuration) as api_call:
        ...     health = await api_call.get("/health")
    """

    def __init__(
        self,
        configuration: Configuration,
        *,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            configuration: Client configuration (nodes are copied).
            http_client: Shared client; one is created (and owned) when omitted.
            clock: Source of epoch seconds for node health, injectable for tests.
        """
        self.configuration = configuration
        self.num_retries = configuration.num_retries
        self.retry_interval_seconds = configuration.retry_interval_seconds

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(configuration.connection_timeout_seconds),
        )

        self.registry = NodeRegistry(
            configuration.nodes,
            nearest_node=configuration.nearest_node,
            clock=clock,
        )
        self.selector = NodeSelector(
            self.registry,
            healthcheck_interval_seconds=configuration.healthcheck_interval_seconds,
        )
        self.executor = RequestExecutor(
            self.registry,
            self._client,
            api_key=configuration.api_key or "",
            connection_timeout_seconds=configuration.connection_timeout_seconds,
            send_api_key_as_query_param=configuration.send_api_key_as_query_param,
            additional_headers=configuration.additional_headers,
        )
        self._request_numbers = itertools.count(1)

    async def __aenter__(self) -> ApiCall:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP connection pool, if this ApiCall created it."""
        if self._owns_client:
            await self._client.aclose()

    # -------------------------------------------------------------------------
    # Verbs
    # -------------------------------------------------------------------------

    async def get(
        self,
        endpoint: str,
        query_parameters: Mapping[str, Any] | None = None,
        *,
        abort_signal: asyncio.Event | None = None,
    ) -> Any:
        return await self.perform_request(
            "GET",
            endpoint,
            query_parameters=query_parameters,
            abort_signal=abort_signal,
        )

    async def delete(
        self,
        endpoint: str,
        query_parameters: Mapping[str, Any] | None = None,
    ) -> Any:
        return await self.perform_request("DELETE", endpoint, query_parameters=query_parameters)

    async def post(
        self,
        endpoint: str,
        body_parameters: Any = None,
        query_parameters: Mapping[str, Any] | None = None,
        additional_headers: Mapping[str, str] | None = None,
    ) -> Any:
        return await self.perform_request(
            "POST",
            endpoint,
            query_parameters=query_parameters,
            body_parameters=body_parameters,
            additional_headers=additional_headers,
        )

    async def put(
        self,
        endpoint: str,
        body_parameters: Any = None,
        query_parameters: Mapping[str, Any] | None = None,
    ) -> Any:
        return await self.perform_request(
            "PUT",
            endpoint,
            query_parameters=query_parameters,
            body_parameters=body_parameters,
        )

    async def patch(
        self,
        endpoint: str,
        body_parameters: Any = None,
        query_parameters: Mapping[str, Any] | None = None,
    ) -> Any:
        return await self.perform_request(
            "PATCH",
            endpoint,
            query_parameters=query_parameters,
            body_parameters=body_parameters,
        )

    # -------------------------------------------------------------------------
    # Retry loop
    # -------------------------------------------------------------------------

    async def perform_request(
        self,
        method: str,
        endpoint: str,
        *,
        query_parameters: Mapping[str, Any] | None = None,
        body_parameters: Any = None,
        additional_headers: Mapping[str, str] | None = None,
        abort_signal: asyncio.Event | None = None,
    ) -> Any:
        """Execute a logical call with retries across nodes.

        Args:
            method: HTTP verb.
            endpoint: Path relative to the node.
            query_parameters: Query string parameters.
            body_parameters: Request body.
            additional_headers: Per-call headers.
            abort_signal: Caller cancellation, checked before every attempt.

        Returns:
            Decoded response body of the first successful attempt.

        Raises:
            MissingConfigurationError: Before any attempt, on invalid config.
            RequestAbortedError: When the abort signal is set.
            TypesenseError: Terminal 3xx/4xx error, or the last retryable
                error once all attempts are exhausted.
        """
        self.configuration.validate()

        method = method.upper()
        request_number = next(self._request_numbers)
        total_attempts = max(self.num_retries, 0) + 1
        logger.debug("performing_request", request_number=request_number, method=method, endpoint=endpoint)

        with request_span(method, endpoint) as span:
            for num_tries in range(1, total_attempts + 1):
                node = self.selector.select_node(request_number)
                record_attempt(span, num_tries, node.label)
                logger.debug(
                    "attempting_request",
                    request_number=request_number,
                    method=method,
                    attempt=num_tries,
                    node=node.label,
                )

                if abort_signal is not None and abort_signal.is_set():
                    raise RequestAbortedError(ABORTED_MESSAGE)

                try:
                    return await self.executor.execute(
                        method,
                        node,
                        endpoint,
                        query_parameters=query_parameters,
                        body_parameters=body_parameters,
                        additional_headers=additional_headers,
                        abort_signal=abort_signal,
                        request_number=request_number,
                    )
                except RETRYABLE_ERRORS as e:
                    logger.warning(
                        "request_failed",
                        request_number=request_number,
                        node=node.label,
                        error=str(e),
                        status_code=e.http_status,
                    )
                    if num_tries == total_attempts:
                        logger.debug("no_retries_left", request_number=request_number)
                        raise

                logger.warning(
                    "retrying_request",
                    request_number=request_number,
                    sleep_seconds=self.retry_interval_seconds,
                )
                await self.timer(self.retry_interval_seconds)

    async def timer(self, seconds: float) -> None:
        """Sleep between attempts; only the calling coroutine is suspended."""
        await asyncio.sleep(seconds)
