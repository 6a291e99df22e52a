"""
Client facades

Client wires Configuration, ApiCall and the cluster-level resources together.
SearchClient is the search-only variant intended for untrusted environments.
"""

from __future__ import annotations

from typing import Any, Final

import httpx

from typesense_dispatch.clients.api_call import ApiCall
from typesense_dispatch.core.config import Configuration
from typesense_dispatch.resources import (
    Debug,
    Health,
    Metrics,
    MultiSearch,
    Operations,
    SearchOnlyCollection,
)

# Keys shorter than this are sent as a query parameter by SearchClient.
MAX_QUERY_PARAM_API_KEY_LENGTH: Final[int] = 2000


class Client:
    """Full client.

    Usage:
        async with Client(api_key="xyz", nodes=[{"host": "localhost", "port": 8108,
                                                  "protocol": "http"}]) as client:
            await client.health.retrieve()
    """

    def __init__(
        self,
        configuration: Configuration | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        **options: Any,
    ) -> None:
        """Initialize from a Configuration or from configuration keyword options."""
        self.configuration = configuration or Configuration(**options)
        self.api_call = ApiCall(self.configuration, http_client=http_client)
        self.health = Health(self.api_call)
        self.debug = Debug(self.api_call)
        self.metrics = Metrics(self.api_call)
        self.operations = Operations(self.api_call)
        self.multi_search = MultiSearch(self.api_call, self.configuration)

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.api_call.close()


class SearchClient:
    """Search-only client.

    Sends the API key as a query parameter when it is short enough, and posts
    multi-search bodies as text/plain, so browser requests avoid a CORS
    preflight.
    """

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient | None = None,
        **options: Any,
    ) -> None:
        if len(options.get("api_key") or "") < MAX_QUERY_PARAM_API_KEY_LENGTH:
            options["send_api_key_as_query_param"] = True

        self.configuration = Configuration(**options)
        self.api_call = ApiCall(self.configuration, http_client=http_client)
        self.multi_search = MultiSearch(self.api_call, self.configuration, use_text_content_type=True)
        self._collections: dict[str, SearchOnlyCollection] = {}

    def collections(self, collection_name: str) -> SearchOnlyCollection:
        """Search-only handle for one collection (created once, then reused).

        Raises:
            ValueError: If no collection name is given.
        """
        if not collection_name:
            raise ValueError(
                "SearchClient only supports search operations, so the collection_name that needs "
                "to be searched must be specified. Use Client if you need to access the collection object."
            )
        if collection_name not in self._collections:
            self._collections[collection_name] = SearchOnlyCollection(
                collection_name,
                self.api_call,
                self.configuration,
            )
        return self._collections[collection_name]

    async def __aenter__(self) -> SearchClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.api_call.close()
