"""typesense-dispatch: resilient request dispatch for Typesense clusters.

Selects a healthy node, executes the HTTP exchange with bounded fixed-interval
retries and per-attempt timeouts, classifies failures into a typed error
taxonomy, and memoizes read responses for a short time window.
"""

__version__ = "0.1.0"

from typesense_dispatch.client import Client, SearchClient  # noqa: E402
from typesense_dispatch.clients import ApiCall, RequestWithCache  # noqa: E402
from typesense_dispatch.core import exceptions  # noqa: E402
from typesense_dispatch.core.config import Configuration, NodeConfiguration  # noqa: E402

__all__ = [
    "ApiCall",
    "Client",
    "Configuration",
    "NodeConfiguration",
    "RequestWithCache",
    "SearchClient",
    "__version__",
    "exceptions",
]
