"""Resources that build endpoint paths and delegate to the dispatcher."""

from typesense_dispatch.resources.operational import Debug, Health, Metrics, Operations
from typesense_dispatch.resources.search import (
    MultiSearch,
    SearchOnlyCollection,
    SearchOnlyDocuments,
)

__all__ = [
    "Debug",
    "Health",
    "Metrics",
    "MultiSearch",
    "Operations",
    "SearchOnlyCollection",
    "SearchOnlyDocuments",
]
