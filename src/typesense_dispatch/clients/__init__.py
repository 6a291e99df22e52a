"""
Request dispatch for a Typesense cluster.

Node selection with health tracking, single-attempt execution, a fixed-interval
retry loop, error classification and a client-side response cache.
"""

from typesense_dispatch.clients.api_call import ApiCall, ApiCallProtocol
from typesense_dispatch.clients.error_classifier import classify_error
from typesense_dispatch.clients.fakes import FakeApiCall, RecordedCall
from typesense_dispatch.clients.node_registry import NEAREST_NODE_INDEX, Node, NodeRegistry
from typesense_dispatch.clients.node_selector import NodeSelector
from typesense_dispatch.clients.request_cache import CacheEntry, RequestWithCache
from typesense_dispatch.clients.request_executor import RequestExecutor

__all__ = [
    "NEAREST_NODE_INDEX",
    "ApiCall",
    "ApiCallProtocol",
    "CacheEntry",
    "FakeApiCall",
    "Node",
    "NodeRegistry",
    "NodeSelector",
    "RecordedCall",
    "RequestExecutor",
    "RequestWithCache",
    "classify_error",
]
