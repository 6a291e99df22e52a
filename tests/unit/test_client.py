"""
Client Facade Tests

End-to-end through Configuration, ApiCall and the resources, with
httpx.MockTransport standing in for the cluster.
"""

from __future__ import annotations

import httpx
import pytest

from typesense_dispatch import Client, Configuration, SearchClient
from typesense_dispatch.client import MAX_QUERY_PARAM_API_KEY_LENGTH
from typesense_dispatch.core.exceptions import MissingConfigurationError

NODES = [{"protocol": "http", "host": "localhost", "port": 8108}]


class Recorder:
    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/search"):
            return httpx.Response(200, json={"found": 0, "hits": []})
        if request.url.path == "/multi_search":
            return httpx.Response(200, json={"results": []})
        return httpx.Response(200, json={"ok": True})


def _http_client(recorder: Recorder) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(recorder))


class TestClient:
    """Tests for the full client."""

    @pytest.mark.asyncio
    async def test_health_roundtrip(self) -> None:
        """client.health.retrieve() hits /health with the key in a header."""
        recorder = Recorder()

        async with Client(api_key="abcd", nodes=NODES, http_client=_http_client(recorder)) as client:
            result = await client.health.retrieve()

        request = recorder.requests[0]
        assert result == {"ok": True}
        assert request.url.path == "/health"
        assert request.headers["X-TYPESENSE-API-KEY"] == "abcd"

    @pytest.mark.asyncio
    async def test_accepts_prebuilt_configuration(self) -> None:
        """A Configuration can be passed directly."""
        configuration = Configuration(api_key="abcd", nodes=NODES)

        async with Client(configuration, http_client=_http_client(Recorder())) as client:
            assert client.configuration is configuration

    def test_invalid_options_rejected(self) -> None:
        """Configuration errors surface at construction."""
        with pytest.raises(MissingConfigurationError):
            Client(api_key="abcd", nodes=[])

    @pytest.mark.asyncio
    async def test_multi_search_posts_json(self) -> None:
        """The full client posts multi-search bodies as JSON."""
        recorder = Recorder()

        async with Client(api_key="abcd", nodes=NODES, http_client=_http_client(recorder)) as client:
            await client.multi_search.perform({"searches": [{"collection": "books", "q": "*"}]})

        assert recorder.requests[0].headers["content-type"] == "application/json"


class TestSearchClient:
    """Tests for the search-only client."""

    @pytest.mark.asyncio
    async def test_short_key_sent_as_query_param(self) -> None:
        """Keys under the length limit move to the query string."""
        recorder = Recorder()

        async with SearchClient(api_key="abcd", nodes=NODES, http_client=_http_client(recorder)) as client:
            await client.collections("books").documents().search({"q": "*", "query_by": "title"})

        request = recorder.requests[0]
        assert request.url.path == "/collections/books/documents/search"
        assert request.url.params["x-typesense-api-key"] == "abcd"
        assert "X-TYPESENSE-API-KEY" not in request.headers

    def test_long_key_stays_in_header(self) -> None:
        """Keys at or above the limit keep the header placement."""
        client = SearchClient(api_key="k" * MAX_QUERY_PARAM_API_KEY_LENGTH, nodes=NODES)

        assert client.configuration.send_api_key_as_query_param is False

    @pytest.mark.asyncio
    async def test_multi_search_uses_text_plain(self) -> None:
        """Search-only multi-search avoids the CORS preflight content type."""
        recorder = Recorder()

        async with SearchClient(api_key="abcd", nodes=NODES, http_client=_http_client(recorder)) as client:
            result = await client.multi_search.perform({"searches": []})

        assert result == {"results": []}
        assert recorder.requests[0].headers["content-type"] == "text/plain"

    def test_collections_requires_name(self) -> None:
        """An empty collection name is rejected."""
        client = SearchClient(api_key="abcd", nodes=NODES)

        with pytest.raises(ValueError, match="collection_name"):
            client.collections("")

    def test_collections_reused(self) -> None:
        """The same handle is returned for the same name."""
        client = SearchClient(api_key="abcd", nodes=NODES)

        assert client.collections("books") is client.collections("books")
        assert client.collections("books") is not client.collections("authors")
