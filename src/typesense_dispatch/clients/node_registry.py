"""
Node Registry

Fixed set of backend nodes plus the optional nearest node, each annotated
with health metadata. Nodes are addressed by index; callers receive frozen
``Node`` snapshots and mutate health only through ``set_health``.

Patterns Applied:
- Arena of records addressed by index instead of shared mutable node objects
- threading.Lock around every field update, so concurrent calls (coroutines
  or threads) never lose a health flip or a cursor advance
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Final

from typesense_dispatch.core.config import NodeConfiguration

NEAREST_NODE_INDEX: Final[str] = "nearestNode"
HEALTHY: Final[bool] = True
UNHEALTHY: Final[bool] = False

NodeIndex = int | str


@dataclass(frozen=True, slots=True)
class Node:
    """Snapshot of one node: its address plus health metadata.

    Attributes:
        index: Position in the node list, or NEAREST_NODE_INDEX.
        config: Address of the node.
        is_healthy: Liveness hint from the most recent attempt.
        last_access_timestamp: Epoch seconds of the most recent health update.
    """

    index: NodeIndex
    config: NodeConfiguration
    is_healthy: bool
    last_access_timestamp: float

    def uri_for(self, endpoint: str) -> str:
        """Absolute URL of ``endpoint`` on this node. ``url`` wins when set."""
        if self.config.url is not None:
            return f"{self.config.url}{endpoint}"
        return (
            f"{self.config.protocol}://{self.config.host}:{self.config.port}"
            f"{self.config.path}{endpoint}"
        )

    @property
    def label(self) -> str:
        return f"Node {self.index}"


@dataclass(slots=True)
class _NodeRecord:
    config: NodeConfiguration
    is_healthy: bool
    last_access_timestamp: float


class NodeRegistry:
    """Holds node records and the round-robin cursor.

    The node set is fixed for the registry's lifetime. Every node starts
    healthy, stamped with the construction time.

    Example:
        >>> registry = NodeRegistry([NodeConfiguration(url="http://a:8108")])
        >>> registry.set_health(0, UNHEALTHY).is_healthy
        False
    """

    def __init__(
        self,
        nodes: Sequence[NodeConfiguration],
        nearest_node: NodeConfiguration | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the registry.

        Args:
            nodes: Ordered node descriptors (copied; later changes to the
                caller's sequence have no effect).
            nearest_node: Optional preferred node.
            clock: Source of epoch seconds, injectable for tests.
        """
        self._clock = clock
        self._lock = threading.Lock()
        now = clock()
        self._records: list[_NodeRecord] = [
            _NodeRecord(config=node, is_healthy=HEALTHY, last_access_timestamp=now)
            for node in nodes
        ]
        self._nearest: _NodeRecord | None = (
            _NodeRecord(config=nearest_node, is_healthy=HEALTHY, last_access_timestamp=now)
            if nearest_node is not None
            else None
        )
        self._current_node_index = -1

    def __len__(self) -> int:
        return len(self._records)

    @property
    def clock(self) -> Callable[[], float]:
        return self._clock

    @property
    def has_nearest_node(self) -> bool:
        return self._nearest is not None

    @property
    def current_node_index(self) -> int:
        return self._current_node_index

    @property
    def nodes(self) -> tuple[Node, ...]:
        """Snapshots of all ordinary nodes, in configured order."""
        with self._lock:
            return tuple(self._snapshot(i, record) for i, record in enumerate(self._records))

    @property
    def nearest_node(self) -> Node | None:
        with self._lock:
            if self._nearest is None:
                return None
            return self._snapshot(NEAREST_NODE_INDEX, self._nearest)

    def get(self, index: NodeIndex) -> Node:
        """Snapshot of the node at ``index``.

        Raises:
            KeyError: If no node has that index.
        """
        with self._lock:
            return self._snapshot(index, self._record(index))

    def set_health(self, index: NodeIndex, is_healthy: bool) -> Node:
        """Record the outcome of an attempt and stamp the current time.

        Args:
            index: Node index or NEAREST_NODE_INDEX.
            is_healthy: New liveness hint.

        Returns:
            Updated snapshot of the node.
        """
        now = self._clock()
        with self._lock:
            record = self._record(index)
            record.is_healthy = is_healthy
            record.last_access_timestamp = now
            return self._snapshot(index, record)

    def advance_cursor(self) -> int:
        """Move the round-robin cursor one step forward (wrapping) and return it."""
        with self._lock:
            self._current_node_index = (self._current_node_index + 1) % len(self._records)
            return self._current_node_index

    def health_summary(self) -> str:
        """One-line health overview of the ordinary nodes, for debug logs."""
        return " || ".join(
            f"{node.label} is {'Healthy' if node.is_healthy else 'Unhealthy'}" for node in self.nodes
        )

    def _record(self, index: NodeIndex) -> _NodeRecord:
        if index == NEAREST_NODE_INDEX:
            if self._nearest is None:
                raise KeyError(index)
            return self._nearest
        if not isinstance(index, int) or not 0 <= index < len(self._records):
            raise KeyError(index)
        return self._records[index]

    @staticmethod
    def _snapshot(index: NodeIndex, record: _NodeRecord) -> Node:
        return Node(
            index=index,
            config=record.config,
            is_healthy=record.is_healthy,
            last_access_timestamp=record.last_access_timestamp,
        )
