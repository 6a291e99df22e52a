"""
typesense-dispatch - Client Configuration

Patterns Applied:
- Pydantic BaseModel for node descriptors (port defaulted from protocol)
- Pydantic Settings with SettingsConfigDict for environment-driven setup
  (env prefix TYPESENSE_)
- Cheap idempotent validate(), run at construction and before every request
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from typesense_dispatch.core.exceptions import MissingConfigurationError
from typesense_dispatch.core.logging import get_logger, set_log_level

logger = get_logger(__name__)

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_CONNECTION_TIMEOUT_SECONDS: Final[float] = 10.0
DEFAULT_HEALTHCHECK_INTERVAL_SECONDS: Final[float] = 15.0
DEFAULT_NUM_RETRIES: Final[int] = 3
DEFAULT_RETRY_INTERVAL_SECONDS: Final[float] = 0.1

DEFAULT_PORTS: Final[dict[str, int]] = {"https": 443, "http": 80}


class NodeConfiguration(BaseModel):
    """Address of one Typesense node.

    Either ``url`` or all of ``protocol``/``host``/``port`` must be set.
    ``port`` defaults from ``protocol`` (443 for https, 80 for http) and
    ``path`` defaults to the empty string.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    protocol: str | None = None
    host: str | None = None
    port: int | None = None
    path: str = ""
    url: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _default_port(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and data.get("port") is None:
            port = DEFAULT_PORTS.get(str(data.get("protocol")))
            if port is not None:
                data = {**data, "port": port}
        return data

    @property
    def is_missing_parameters(self) -> bool:
        """True when neither a url nor a complete protocol/host/port is set."""
        if self.url is not None:
            return False
        return self.protocol is None or self.host is None or self.port is None


def _to_node(node: NodeConfiguration | Mapping[str, Any]) -> NodeConfiguration:
    if isinstance(node, NodeConfiguration):
        return node
    return NodeConfiguration.model_validate(dict(node))


def _positive_or_default(*candidates: float | None, default: float) -> float:
    """First candidate that is set and positive, else ``default``.

    Zero and negative durations count as unset, like a missing option.
    """
    for value in candidates:
        if value is not None and value > 0:
            return value
    return default


class Configuration:
    """Dispatcher configuration.

    Accepts the same options as the other Typesense clients, in snake_case.
    Validation runs at construction and again before every request.

    Attributes:
        nodes: Ordered node descriptors.
        nearest_node: Optional preferred node, checked before the rotation.
        api_key: Typesense API key.
        connection_timeout_seconds: Per-attempt deadline.
        healthcheck_interval_seconds: Age after which an unhealthy node is
            optimistically retried.
        num_retries: Retries per request (total attempts = num_retries + 1).
        retry_interval_seconds: Fixed sleep between attempts.
        send_api_key_as_query_param: Send the key as ``x-typesense-api-key``
            query parameter instead of a header.
        cache_search_results_for_seconds: Default client-side cache TTL for
            search calls; 0 disables the cache.
        use_server_side_search_cache: Append ``usecache=true`` to searches.
        additional_headers: Static headers added to every request.
        log_level: Level for the ``typesense_dispatch`` stdlib logger; left
            untouched when None.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        nodes: Sequence[NodeConfiguration | Mapping[str, Any]] | None = None,
        nearest_node: NodeConfiguration | Mapping[str, Any] | None = None,
        connection_timeout_seconds: float | None = None,
        timeout_seconds: float | None = None,
        healthcheck_interval_seconds: float | None = None,
        num_retries: int | None = None,
        retry_interval_seconds: float | None = None,
        send_api_key_as_query_param: bool = False,
        cache_search_results_for_seconds: float = 0,
        use_server_side_search_cache: bool = False,
        additional_headers: Mapping[str, str] | None = None,
        log_level: str | None = None,
        master_node: Any = None,
        read_replica_nodes: Any = None,
    ) -> None:
        if log_level is not None:
            set_log_level(log_level)

        self.nodes: tuple[NodeConfiguration, ...] = tuple(_to_node(node) for node in nodes or ())
        self.nearest_node: NodeConfiguration | None = (
            _to_node(nearest_node) if nearest_node is not None else None
        )

        self.connection_timeout_seconds = _positive_or_default(
            connection_timeout_seconds,
            timeout_seconds,
            default=DEFAULT_CONNECTION_TIMEOUT_SECONDS,
        )
        self.healthcheck_interval_seconds = _positive_or_default(
            healthcheck_interval_seconds,
            default=DEFAULT_HEALTHCHECK_INTERVAL_SECONDS,
        )
        if num_retries is None:
            num_retries = len(self.nodes) + (0 if self.nearest_node is None else 1) or DEFAULT_NUM_RETRIES
        self.num_retries = num_retries
        self.retry_interval_seconds = _positive_or_default(
            retry_interval_seconds,
            default=DEFAULT_RETRY_INTERVAL_SECONDS,
        )

        self.api_key = api_key
        self.send_api_key_as_query_param = send_api_key_as_query_param
        self.cache_search_results_for_seconds = cache_search_results_for_seconds
        self.use_server_side_search_cache = use_server_side_search_cache
        self.additional_headers: dict[str, str] = dict(additional_headers or {})
        self.log_level = log_level

        self._show_deprecation_warnings(
            timeout_seconds=timeout_seconds,
            master_node=master_node,
            read_replica_nodes=read_replica_nodes,
        )
        self.validate()

    def validate(self) -> bool:
        """Check that the dispatcher can run with this configuration.

        Returns:
            True when the configuration is usable.

        Raises:
            MissingConfigurationError: On empty or incomplete nodes, an
                incomplete nearest node, or a missing API key.
        """
        if not self.nodes or any(node.is_missing_parameters for node in self.nodes):
            raise MissingConfigurationError(
                "Ensure that nodes[].protocol, nodes[].host and nodes[].port are set"
            )

        if self.nearest_node is not None and self.nearest_node.is_missing_parameters:
            raise MissingConfigurationError(
                "Ensure that nearest_node.protocol, nearest_node.host and nearest_node.port are set"
            )

        if self.api_key is None:
            raise MissingConfigurationError("Ensure that api_key is set")

        return True

    @staticmethod
    def _show_deprecation_warnings(
        *,
        timeout_seconds: float | None,
        master_node: Any,
        read_replica_nodes: Any,
    ) -> None:
        if timeout_seconds:
            logger.warning(
                "deprecated_option",
                option="timeout_seconds",
                replacement="connection_timeout_seconds",
            )
        if master_node:
            logger.warning(
                "deprecated_option",
                option="master_node",
                detail="consolidated into nodes starting with Typesense Server v0.12",
            )
        if read_replica_nodes:
            logger.warning(
                "deprecated_option",
                option="read_replica_nodes",
                detail="consolidated into nodes starting with Typesense Server v0.12",
            )

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **overrides: Any) -> Configuration:
        """Build a single-node configuration from environment settings.

        Args:
            settings: Settings instance; read from the environment when omitted.
            **overrides: Keyword options that take precedence over settings.

        Returns:
            Validated Configuration
        """
        settings = settings or get_settings()
        node: dict[str, Any]
        if settings.url:
            node = {"url": settings.url}
        else:
            node = {
                "protocol": settings.protocol,
                "host": settings.host,
                "port": settings.port,
                "path": settings.path,
            }
        options: dict[str, Any] = {
            "api_key": settings.api_key,
            "nodes": [node],
            "connection_timeout_seconds": settings.connection_timeout_seconds,
            "healthcheck_interval_seconds": settings.healthcheck_interval_seconds,
            "num_retries": settings.num_retries,
            "retry_interval_seconds": settings.retry_interval_seconds,
            "send_api_key_as_query_param": settings.send_api_key_as_query_param,
            "cache_search_results_for_seconds": settings.cache_search_results_for_seconds,
            "log_level": settings.log_level,
        }
        options.update(overrides)
        return cls(**options)


class Settings(BaseSettings):
    """Environment-driven settings.

    All settings can be overridden via environment variables with the
    TYPESENSE_ prefix. Example: TYPESENSE_HOST=search.internal,
    TYPESENSE_API_KEY=xyz
    """

    api_key: str | None = None

    # Node address
    protocol: str = "http"
    host: str = "localhost"
    port: int | None = 8108
    path: str = ""
    url: str | None = None

    # Dispatch behaviour
    connection_timeout_seconds: float = DEFAULT_CONNECTION_TIMEOUT_SECONDS
    healthcheck_interval_seconds: float = DEFAULT_HEALTHCHECK_INTERVAL_SECONDS
    num_retries: int | None = None
    retry_interval_seconds: float = DEFAULT_RETRY_INTERVAL_SECONDS
    send_api_key_as_query_param: bool = False
    cache_search_results_for_seconds: float = 0

    # Logging configuration
    log_level: str | None = None

    model_config = SettingsConfigDict(
        env_prefix="TYPESENSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


def get_settings() -> Settings:
    """Get settings instance.

    Returns:
        Settings instance with values from environment
    """
    return Settings()
