"""
Cluster-level resources: health, debug, metrics and operations.

Each one builds a path and delegates to the dispatcher.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Final

from typesense_dispatch.clients.api_call import ApiCallProtocol

HEALTH_PATH: Final[str] = "/health"
DEBUG_PATH: Final[str] = "/debug"
METRICS_PATH: Final[str] = "/metrics.json"
OPERATIONS_PATH: Final[str] = "/operations"


class Health:
    def __init__(self, api_call: ApiCallProtocol) -> None:
        self._api_call = api_call

    async def retrieve(self) -> dict[str, Any]:
        """GET /health, e.g. ``{"ok": true}``."""
        return await self._api_call.get(HEALTH_PATH)


class Debug:
    def __init__(self, api_call: ApiCallProtocol) -> None:
        self._api_call = api_call

    async def retrieve(self) -> dict[str, Any]:
        """GET /debug: server ``state`` and ``version``."""
        return await self._api_call.get(DEBUG_PATH)


class Metrics:
    def __init__(self, api_call: ApiCallProtocol) -> None:
        self._api_call = api_call

    async def retrieve(self) -> dict[str, Any]:
        return await self._api_call.get(METRICS_PATH)


class Operations:
    """Cluster operations such as ``snapshot`` or ``vote``."""

    def __init__(self, api_call: ApiCallProtocol) -> None:
        self._api_call = api_call

    async def perform(
        self,
        operation_name: str,
        query_parameters: Mapping[str, Any] | None = None,
    ) -> Any:
        """POST /operations/<operation_name>.

        Args:
            operation_name: e.g. ``snapshot`` or ``vote``.
            query_parameters: e.g. ``{"snapshot_path": "/tmp/snap"}``.
        """
        return await self._api_call.post(
            f"{OPERATIONS_PATH}/{operation_name}",
            {},
            dict(query_parameters or {}),
        )
