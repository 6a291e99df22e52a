"""
Node Selector

Chooses the node that serves the next attempt. Never fails: when nothing is
known to be healthy it still returns a node, since a node that went down may
have recovered since it was last tried.
"""

from __future__ import annotations

import logging

from typesense_dispatch.clients.node_registry import NEAREST_NODE_INDEX, Node, NodeRegistry
from typesense_dispatch.core.logging import get_logger

logger = get_logger(__name__)


class NodeSelector:
    """Nearest-node-first, then round-robin over healthy nodes.

    Attributes:
        registry: Node records and cursor shared by every call.
        healthcheck_interval_seconds: Age after which an unhealthy node is
            put back into rotation without a separate health check.
    """

    def __init__(self, registry: NodeRegistry, healthcheck_interval_seconds: float) -> None:
        self.registry = registry
        self.healthcheck_interval_seconds = healthcheck_interval_seconds

    def select_node(self, request_number: int = 0) -> Node:
        """Pick the node for the next attempt.

        1. The nearest node, if configured and healthy or due for a recheck.
        2. Otherwise the next healthy-or-due node in round-robin order,
           starting after the cursor, examining at most len(nodes) + 1 nodes.
        3. Otherwise the last node examined.

        Args:
            request_number: Identifier of the logical call, for logs.

        Returns:
            The selected node snapshot.
        """
        if self.registry.has_nearest_node:
            nearest = self.registry.get(NEAREST_NODE_INDEX)
            logger.debug(
                "nearest_node_health",
                request_number=request_number,
                node=nearest.label,
                is_healthy=nearest.is_healthy,
            )
            if self._is_selectable(nearest, request_number):
                logger.debug("node_selected", request_number=request_number, node=nearest.label)
                return nearest
            logger.debug("falling_back_to_individual_nodes", request_number=request_number)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "nodes_health",
                request_number=request_number,
                summary=self.registry.health_summary(),
            )

        candidate = self.registry.get(self.registry.advance_cursor())
        for _ in range(len(self.registry)):
            if self._is_selectable(candidate, request_number):
                break
            candidate = self.registry.get(self.registry.advance_cursor())
        else:
            if not self._is_selectable(candidate, request_number):
                logger.debug("no_healthy_nodes", request_number=request_number, node=candidate.label)
                return candidate

        logger.debug("node_selected", request_number=request_number, node=candidate.label)
        return candidate

    def _is_selectable(self, node: Node, request_number: int) -> bool:
        return node.is_healthy or self.node_due_for_healthcheck(node, request_number)

    def node_due_for_healthcheck(self, node: Node, request_number: int = 0) -> bool:
        """True when the node's last health update is older than the interval."""
        elapsed = self.registry.clock() - node.last_access_timestamp
        is_due = elapsed > self.healthcheck_interval_seconds
        if is_due:
            logger.debug(
                "node_due_for_healthcheck",
                request_number=request_number,
                node=node.label,
                healthcheck_interval_seconds=self.healthcheck_interval_seconds,
            )
        return is_due
