"""
Node Selector Tests

- Round robin visits every healthy node once per cycle
- Nearest node wins whenever it is healthy or due for a recheck
- Unhealthy nodes re-enter rotation after the health-check interval
- Selection never fails, even with every node unhealthy
"""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest

from typesense_dispatch.clients.node_registry import (
    NEAREST_NODE_INDEX,
    UNHEALTHY,
    NodeRegistry,
)
from typesense_dispatch.clients.node_selector import NodeSelector
from typesense_dispatch.core.config import NodeConfiguration

HEALTHCHECK_INTERVAL_SECONDS = 15.0


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _nodes(count: int) -> list[NodeConfiguration]:
    return [NodeConfiguration(protocol="http", host=f"node{i}", port=8108) for i in range(count)]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def _selector(
    clock: FakeClock,
    count: int = 3,
    nearest: bool = False,
) -> NodeSelector:
    registry = NodeRegistry(
        _nodes(count),
        nearest_node=NodeConfiguration(protocol="http", host="nearest", port=8108) if nearest else None,
        clock=clock,
    )
    return NodeSelector(registry, healthcheck_interval_seconds=HEALTHCHECK_INTERVAL_SECONDS)


class TestRoundRobin:
    """Tests for ordinary-node rotation."""

    @pytest.mark.parametrize("count", [1, 2, 3, 5])
    def test_full_cycle_visits_every_node_once(self, clock: FakeClock, count: int) -> None:
        """N selections over N healthy nodes return N distinct nodes."""
        selector = _selector(clock, count=count)

        indexes = [selector.select_node().index for _ in range(count)]

        assert sorted(indexes) == list(range(count))

    def test_rotation_continues_across_calls(self, clock: FakeClock) -> None:
        """The cursor is not reset between logical calls."""
        selector = _selector(clock)

        indexes = [selector.select_node(request_number=n).index for n in range(5)]

        assert indexes == [0, 1, 2, 0, 1]

    def test_unhealthy_node_is_skipped(self, clock: FakeClock) -> None:
        """A recently failed node is passed over."""
        selector = _selector(clock)
        selector.registry.set_health(1, UNHEALTHY)

        indexes = [selector.select_node().index for _ in range(4)]

        assert indexes == [0, 2, 0, 2]


class TestNearestNode:
    """Tests for nearest-node preference."""

    def test_healthy_nearest_node_always_selected(self, clock: FakeClock) -> None:
        """A healthy nearest node wins every time."""
        selector = _selector(clock, nearest=True)

        indexes = {selector.select_node().index for _ in range(5)}

        assert indexes == {NEAREST_NODE_INDEX}

    def test_healthy_nearest_node_selected_when_others_unhealthy(self, clock: FakeClock) -> None:
        """Ordinary-node state does not matter while the nearest node is healthy."""
        selector = _selector(clock, nearest=True)
        for index in range(3):
            selector.registry.set_health(index, UNHEALTHY)

        assert selector.select_node().index == NEAREST_NODE_INDEX

    def test_unhealthy_nearest_node_falls_back_to_rotation(self, clock: FakeClock) -> None:
        """A recently failed nearest node is skipped."""
        selector = _selector(clock, nearest=True)
        selector.registry.set_health(NEAREST_NODE_INDEX, UNHEALTHY)

        assert selector.select_node().index == 0
        assert selector.registry.current_node_index == 0

    def test_unhealthy_nearest_node_retried_when_due(self, clock: FakeClock) -> None:
        """The nearest node is retried once the interval has passed."""
        selector = _selector(clock, nearest=True)
        selector.registry.set_health(NEAREST_NODE_INDEX, UNHEALTHY)
        clock.advance(HEALTHCHECK_INTERVAL_SECONDS + 1)

        assert selector.select_node().index == NEAREST_NODE_INDEX


class TestHealthRecheck:
    """Tests for optimistic re-entry of unhealthy nodes."""

    def test_node_not_due_at_exact_interval(self, clock: FakeClock) -> None:
        """Due means strictly older than the interval."""
        selector = _selector(clock, count=1)
        node = selector.registry.set_health(0, UNHEALTHY)
        clock.advance(HEALTHCHECK_INTERVAL_SECONDS)

        assert selector.node_due_for_healthcheck(node) is False

    def test_node_due_after_interval(self, clock: FakeClock) -> None:
        """A node failed at T is due once now - T exceeds the interval."""
        selector = _selector(clock, count=1)
        node = selector.registry.set_health(0, UNHEALTHY)
        clock.advance(HEALTHCHECK_INTERVAL_SECONDS + 0.001)

        assert selector.node_due_for_healthcheck(node) is True

    def test_unhealthy_node_reenters_rotation(self, clock: FakeClock) -> None:
        """Without any successful request, the node is selectable again after the interval."""
        selector = _selector(clock, count=2)
        selector.registry.set_health(0, UNHEALTHY)

        assert [selector.select_node().index for _ in range(2)] == [1, 1]

        clock.advance(HEALTHCHECK_INTERVAL_SECONDS + 1)

        assert [selector.select_node().index for _ in range(2)] == [0, 1]


class TestGracefulDegradation:
    """Tests for selection with no healthy node."""

    def test_returns_a_node_when_all_unhealthy(self, clock: FakeClock) -> None:
        """The last node examined is returned after len(nodes) + 1 checks."""
        selector = _selector(clock, count=3)
        for index in range(3):
            selector.registry.set_health(index, UNHEALTHY)

        node = selector.select_node()

        # Checks 0, 1, 2, 0 from a fresh cursor.
        assert node.index == 0
        assert node.is_healthy is False

    def test_all_unhealthy_still_rotates(self, clock: FakeClock) -> None:
        """Successive degraded selections keep advancing the cursor."""
        selector = _selector(clock, count=3)
        for index in range(3):
            selector.registry.set_health(index, UNHEALTHY)

        indexes = [selector.select_node().index for _ in range(3)]

        assert indexes == [0, 1, 2]

    def test_all_unhealthy_with_nearest_node(self, clock: FakeClock) -> None:
        """An unhealthy nearest node plus unhealthy rotation still yields a node."""
        selector = _selector(clock, count=2, nearest=True)
        selector.registry.set_health(NEAREST_NODE_INDEX, UNHEALTHY)
        for index in range(2):
            selector.registry.set_health(index, UNHEALTHY)

        node = selector.select_node()

        assert node.index == 0
        assert node.is_healthy is False


class TestHealthSummaryLogging:
    """Tests for the per-selection health summary."""

    def test_summary_not_built_when_debug_disabled(
        self, clock: FakeClock, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Selections at WARNING never render the node health summary."""
        caplog.set_level(logging.WARNING, logger="typesense_dispatch")
        selector = _selector(clock)

        with patch.object(selector.registry, "health_summary") as health_summary:
            selector.select_node()

        health_summary.assert_not_called()

    def test_summary_logged_at_debug(self, clock: FakeClock, caplog: pytest.LogCaptureFixture) -> None:
        """At DEBUG the summary is built once per selection and logged."""
        caplog.set_level(logging.DEBUG, logger="typesense_dispatch")
        selector = _selector(clock)

        with patch.object(selector.registry, "health_summary", return_value="node0=Healthy") as health_summary:
            selector.select_node()

        health_summary.assert_called_once_with()
        assert any("nodes_health" in record.getMessage() for record in caplog.records)
