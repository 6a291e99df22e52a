"""
Node Registry Tests

- Nodes start healthy, stamped with construction time
- Health updates are addressed by index and stamp the clock
- Round-robin cursor wraps and survives concurrent advances
- URL construction from url or discrete fields
"""

from __future__ import annotations

import threading

import pytest

from typesense_dispatch.clients.node_registry import (
    NEAREST_NODE_INDEX,
    UNHEALTHY,
    NodeRegistry,
)
from typesense_dispatch.core.config import NodeConfiguration


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def node_configs() -> list[NodeConfiguration]:
    return [
        NodeConfiguration(protocol="http", host=f"node{i}", port=8108)
        for i in range(3)
    ]


@pytest.fixture
def registry(node_configs: list[NodeConfiguration], clock: FakeClock) -> NodeRegistry:
    return NodeRegistry(
        node_configs,
        nearest_node=NodeConfiguration(protocol="https", host="nearest", port=443),
        clock=clock,
    )


class TestInitialization:
    """Tests for registry construction."""

    def test_all_nodes_start_healthy(self, registry: NodeRegistry) -> None:
        """Every node, nearest included, is healthy at construction."""
        assert all(node.is_healthy for node in registry.nodes)
        assert registry.nearest_node is not None
        assert registry.nearest_node.is_healthy

    def test_nodes_stamped_with_construction_time(
        self, registry: NodeRegistry, clock: FakeClock
    ) -> None:
        """Timestamps equal the clock at construction."""
        assert {node.last_access_timestamp for node in registry.nodes} == {clock.now}

    def test_nodes_are_indexed_by_position(self, registry: NodeRegistry) -> None:
        """Ordinary nodes are indexed 0..N-1; the nearest node has a sentinel index."""
        assert [node.index for node in registry.nodes] == [0, 1, 2]
        assert registry.nearest_node.index == NEAREST_NODE_INDEX

    def test_nearest_node_absent_when_not_configured(
        self, node_configs: list[NodeConfiguration]
    ) -> None:
        """No nearest node means None, not an unhealthy node."""
        registry = NodeRegistry(node_configs)

        assert registry.nearest_node is None
        assert registry.has_nearest_node is False

    def test_registry_copies_node_list(self, node_configs: list[NodeConfiguration]) -> None:
        """Changes to the caller's list do not reach the registry."""
        registry = NodeRegistry(node_configs)
        node_configs.append(NodeConfiguration(protocol="http", host="extra", port=8108))

        assert len(registry) == 3


class TestSetHealth:
    """Tests for health updates."""

    def test_set_health_flips_flag_and_stamps_time(
        self, registry: NodeRegistry, clock: FakeClock
    ) -> None:
        """set_health records the flag and the current time."""
        clock.advance(5)

        updated = registry.set_health(1, UNHEALTHY)

        assert updated.is_healthy is False
        assert updated.last_access_timestamp == clock.now
        assert registry.get(1).is_healthy is False
        assert registry.get(0).is_healthy is True

    def test_set_health_on_nearest_node(self, registry: NodeRegistry) -> None:
        """The nearest node is addressed by its sentinel index."""
        registry.set_health(NEAREST_NODE_INDEX, UNHEALTHY)

        assert registry.nearest_node.is_healthy is False

    def test_snapshots_do_not_change_after_update(self, registry: NodeRegistry) -> None:
        """A snapshot taken before an update keeps its old values."""
        before = registry.get(0)
        registry.set_health(0, UNHEALTHY)

        assert before.is_healthy is True

    @pytest.mark.parametrize("index", [3, -1, "other"])
    def test_unknown_index_raises_key_error(self, registry: NodeRegistry, index: object) -> None:
        """Unknown indexes are rejected."""
        with pytest.raises(KeyError):
            registry.get(index)  # type: ignore[arg-type]

    def test_nearest_index_without_nearest_node_raises(
        self, node_configs: list[NodeConfiguration]
    ) -> None:
        """The sentinel index is invalid when no nearest node exists."""
        registry = NodeRegistry(node_configs)

        with pytest.raises(KeyError):
            registry.set_health(NEAREST_NODE_INDEX, UNHEALTHY)


class TestCursor:
    """Tests for the round-robin cursor."""

    def test_cursor_starts_before_first_node(self, registry: NodeRegistry) -> None:
        """The first advance lands on node 0."""
        assert registry.current_node_index == -1
        assert registry.advance_cursor() == 0

    def test_cursor_wraps(self, registry: NodeRegistry) -> None:
        """Advancing past the last node wraps to the first."""
        indexes = [registry.advance_cursor() for _ in range(7)]

        assert indexes == [0, 1, 2, 0, 1, 2, 0]

    def test_concurrent_advances_are_not_lost(self, registry: NodeRegistry) -> None:
        """Advances from many threads all land."""
        threads = [
            threading.Thread(target=lambda: [registry.advance_cursor() for _ in range(1000)])
            for _ in range(8)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert registry.current_node_index == (8 * 1000 - 1) % 3


class TestUriFor:
    """Tests for Node.uri_for."""

    def test_uri_from_discrete_fields(self) -> None:
        """protocol://host:port + path + endpoint."""
        registry = NodeRegistry(
            [NodeConfiguration(protocol="https", host="search.example.com", port=443, path="/ts")]
        )

        assert registry.get(0).uri_for("/health") == "https://search.example.com:443/ts/health"

    def test_url_takes_precedence(self) -> None:
        """A configured url wins over the discrete fields."""
        registry = NodeRegistry(
            [NodeConfiguration(protocol="http", host="ignored", port=1, url="http://lb:8108")]
        )

        assert registry.get(0).uri_for("/health") == "http://lb:8108/health"

    def test_health_summary_lists_every_node(self, registry: NodeRegistry) -> None:
        """Summary names each node and its state."""
        registry.set_health(1, UNHEALTHY)

        summary = registry.health_summary()

        assert summary == "Node 0 is Healthy || Node 1 is Unhealthy || Node 2 is Healthy"
