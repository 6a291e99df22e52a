"""
typesense-dispatch - Structured Logging Module

Every module logs through structlog with snake_case event names and
structured fields (request_number, node, status_code). Loggers are wrapped
around stdlib loggers under ``typesense_dispatch`` with the library's own
processor chain, so the host application's structlog configuration is never
read or replaced. Levels and handlers are plain stdlib logging.

Patterns Applied:
- Opt-in, one-time configure_logging() for scripts that want console or
  JSON output without setting up logging themselves
- NullHandler on the library logger; the root logger is never touched

Anti-Patterns Avoided:
- structlog.configure() from library code - PREVENTED, loggers carry their
  own processors via structlog.wrap_logger()
"""

import logging
import sys
from typing import IO, Any

import structlog
from structlog.typing import EventDict

# Module-level flag for one-time configuration
_configured: bool = False

LIBRARY_NAME = "typesense-dispatch"
ROOT_LOGGER_NAME = "typesense_dispatch"

# Level names accepted besides the stdlib ones.
LEVEL_ALIASES = {"WARN": "WARNING", "TRACE": "DEBUG", "SILENT": "CRITICAL"}

_console_renderer = structlog.dev.ConsoleRenderer(colors=False)
_renderer: Any = _console_renderer

logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())


def add_library_info(
    logger: logging.Logger,  # noqa: ARG001 - Required by structlog interface
    method_name: str,  # noqa: ARG001 - Required by structlog interface
    event_dict: EventDict,
) -> EventDict:
    """Tag every event with ``library=typesense-dispatch``."""
    event_dict["library"] = LIBRARY_NAME
    return event_dict


def _render(logger: Any, method_name: str, event_dict: EventDict) -> Any:
    return _renderer(logger, method_name, event_dict)


_PROCESSORS: list[Any] = [
    structlog.stdlib.filter_by_level,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    add_library_info,
    structlog.processors.format_exc_info,
    _render,
]


def _resolve_level(log_level: str) -> int:
    name = log_level.upper()
    name = LEVEL_ALIASES.get(name, name)
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def set_log_level(log_level: str) -> None:
    """Set the level of the ``typesense_dispatch`` stdlib logger only."""
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(_resolve_level(log_level))


def configure_logging(
    log_level: str = "WARNING",
    json_output: bool = False,
    stream: IO[str] | None = None,
) -> None:
    """Send dispatcher events to a stream.

    Opt-in for applications without their own logging setup. Only the first
    call has an effect.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL; ``warn``,
            ``trace`` and ``silent`` are accepted as aliases.
        json_output: Render events as JSON instead of console key=value pairs.
        stream: Destination, stdout by default.
    """
    global _configured, _renderer

    if _configured:
        return

    set_log_level(log_level)
    _renderer = structlog.processors.JSONRenderer() if json_output else _console_renderer

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    library_logger = logging.getLogger(ROOT_LOGGER_NAME)
    library_logger.addHandler(handler)
    library_logger.propagate = False

    _configured = True


def get_logger(name: str) -> Any:
    """Structured logger for ``name`` (pass ``__name__``)."""
    return structlog.wrap_logger(
        logging.getLogger(name),
        processors=_PROCESSORS,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
    )


def reset_logging() -> None:
    """Reset logging configuration for testing."""
    global _configured, _renderer
    _configured = False
    _renderer = _console_renderer
    library_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(library_logger.handlers):
        if not isinstance(handler, logging.NullHandler):
            library_logger.removeHandler(handler)
    library_logger.setLevel(logging.NOTSET)
    library_logger.propagate = True
