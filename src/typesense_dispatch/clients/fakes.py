"""
Test doubles for the dispatcher.

FakeApiCall implements ApiCallProtocol without HTTP: it records every call
and answers from preset responses keyed by (method, endpoint).
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from typesense_dispatch.core.exceptions import TypesenseError


@dataclass
class RecordedCall:
    """One call received by FakeApiCall."""

    method: str
    endpoint: str
    query_parameters: dict[str, Any] = field(default_factory=dict)
    body_parameters: Any = None
    additional_headers: dict[str, str] = field(default_factory=dict)
    abort_signal: asyncio.Event | None = None


class FakeApiCall:
    """Fake dispatcher for unit testing resources.

    Usage:
        fake = FakeApiCall(responses={("GET", "/health"): {"ok": True}})
        await Health(fake).retrieve()
        assert fake.calls[0].endpoint == "/health"
    """

    def __init__(
        self,
        responses: Mapping[tuple[str, str], Any] | None = None,
        error: TypesenseError | None = None,
    ) -> None:
        """Initialize with preset responses.

        Args:
            responses: Map of (METHOD, endpoint) to the value to return.
            error: Optional error raised by every call.
        """
        self._responses: dict[tuple[str, str], Any] = dict(responses or {})
        self._error = error
        self.calls: list[RecordedCall] = []

    def set_response(self, method: str, endpoint: str, response: Any) -> None:
        self._responses[(method.upper(), endpoint)] = response

    async def _respond(self, call: RecordedCall) -> Any:
        await asyncio.sleep(0)
        self.calls.append(call)
        if self._error:
            raise self._error
        return self._responses.get((call.method, call.endpoint))

    async def get(
        self,
        endpoint: str,
        query_parameters: Mapping[str, Any] | None = None,
        *,
        abort_signal: asyncio.Event | None = None,
    ) -> Any:
        return await self._respond(
            RecordedCall("GET", endpoint, dict(query_parameters or {}), abort_signal=abort_signal)
        )

    async def post(
        self,
        endpoint: str,
        body_parameters: Any = None,
        query_parameters: Mapping[str, Any] | None = None,
        additional_headers: Mapping[str, str] | None = None,
    ) -> Any:
        return await self._respond(
            RecordedCall(
                "POST",
                endpoint,
                dict(query_parameters or {}),
                body_parameters,
                dict(additional_headers or {}),
            )
        )

    async def put(
        self,
        endpoint: str,
        body_parameters: Any = None,
        query_parameters: Mapping[str, Any] | None = None,
    ) -> Any:
        return await self._respond(
            RecordedCall("PUT", endpoint, dict(query_parameters or {}), body_parameters)
        )

    async def patch(
        self,
        endpoint: str,
        body_parameters: Any = None,
        query_parameters: Mapping[str, Any] | None = None,
    ) -> Any:
        return await self._respond(
            RecordedCall("PATCH", endpoint, dict(query_parameters or {}), body_parameters)
        )

    async def delete(
        self,
        endpoint: str,
        query_parameters: Mapping[str, Any] | None = None,
    ) -> Any:
        return await self._respond(RecordedCall("DELETE", endpoint, dict(query_parameters or {})))
