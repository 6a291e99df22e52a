"""
Search resources

Read-style calls that go through RequestWithCache: multi-search and
single-collection document search.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any, Final

from typesense_dispatch.clients.api_call import ApiCallProtocol
from typesense_dispatch.clients.request_cache import RequestWithCache
from typesense_dispatch.core.config import Configuration

MULTI_SEARCH_PATH: Final[str] = "/multi_search"
COLLECTIONS_PATH: Final[str] = "/collections"
DOCUMENTS_PATH: Final[str] = "/documents"


def _search_query_parameters(
    configuration: Configuration,
    parameters: Mapping[str, Any] | None,
) -> dict[str, Any]:
    query_parameters = dict(parameters or {})
    if configuration.use_server_side_search_cache:
        query_parameters["usecache"] = True
    return query_parameters


class MultiSearch:
    """POST /multi_search with client-side response caching.

    Attributes:
        use_text_content_type: Send ``content-type: text/plain``; used by the
            search-only client so browsers skip the CORS preflight.
    """

    def __init__(
        self,
        api_call: ApiCallProtocol,
        configuration: Configuration,
        use_text_content_type: bool = False,
    ) -> None:
        self._api_call = api_call
        self._configuration = configuration
        self.use_text_content_type = use_text_content_type
        self._request_with_cache = RequestWithCache()

    async def perform(
        self,
        search_requests: Mapping[str, Any],
        common_params: Mapping[str, Any] | None = None,
        *,
        cache_search_results_for_seconds: float | None = None,
    ) -> dict[str, Any]:
        """Run several searches in one request.

        Args:
            search_requests: ``{"searches": [{...}, ...]}``
            common_params: Parameters shared by every search, sent as query string.
            cache_search_results_for_seconds: TTL override; defaults to the
                configured value (0 disables caching).

        Returns:
            ``{"results": [...]}``
        """
        if cache_search_results_for_seconds is None:
            cache_search_results_for_seconds = self._configuration.cache_search_results_for_seconds

        additional_headers: dict[str, str] = {}
        if self.use_text_content_type:
            additional_headers["content-type"] = "text/plain"
        query_parameters = _search_query_parameters(self._configuration, common_params)

        return await self._request_with_cache.perform(
            self._api_call.post,
            [MULTI_SEARCH_PATH, search_requests, query_parameters, additional_headers],
            cache_response_for_seconds=cache_search_results_for_seconds,
        )


class SearchOnlyDocuments:
    """Document search in one collection, with client-side response caching."""

    def __init__(
        self,
        collection_name: str,
        api_call: ApiCallProtocol,
        configuration: Configuration,
    ) -> None:
        self.collection_name = collection_name
        self._api_call = api_call
        self._configuration = configuration
        self._request_with_cache = RequestWithCache()

    def endpoint_path(self, operation: str | None = None) -> str:
        path = f"{COLLECTIONS_PATH}/{self.collection_name}{DOCUMENTS_PATH}"
        return path if operation is None else f"{path}/{operation}"

    async def search(
        self,
        search_parameters: Mapping[str, Any],
        *,
        cache_search_results_for_seconds: float | None = None,
        abort_signal: asyncio.Event | None = None,
    ) -> dict[str, Any]:
        """GET .../documents/search.

        The abort signal is not part of the cache key: two searches with the
        same parameters share an entry regardless of their signals.
        """
        if cache_search_results_for_seconds is None:
            cache_search_results_for_seconds = self._configuration.cache_search_results_for_seconds
        query_parameters = _search_query_parameters(self._configuration, search_parameters)

        async def request(endpoint: str, parameters: dict[str, Any]) -> Any:
            return await self._api_call.get(endpoint, parameters, abort_signal=abort_signal)

        return await self._request_with_cache.perform(
            request,
            [self.endpoint_path("search"), query_parameters],
            cache_response_for_seconds=cache_search_results_for_seconds,
        )


class SearchOnlyCollection:
    def __init__(
        self,
        name: str,
        api_call: ApiCallProtocol,
        configuration: Configuration,
    ) -> None:
        self.name = name
        self._documents = SearchOnlyDocuments(name, api_call, configuration)

    def documents(self) -> SearchOnlyDocuments:
        return self._documents
