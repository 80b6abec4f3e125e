"""
Centralized logging configuration for eventgallery.

Structured logging is set up with structlog on top of the standard library
``logging`` module so storage adapters, the metadata store and the lifecycle
orchestrator all emit the same event-name-plus-context records.

Logs always go to stderr. The operator CLI prints its results on stdout, and
that output has to stay machine-readable.

Environment:
    LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL (default INFO)
    LOG_FORMAT: ``console`` or ``json``; overrides the per-environment default
    ENVIRONMENT: development, dev and local get console output by default
"""

import logging
import os
import sys
from typing import Any

import structlog

DEVELOPMENT_ENVIRONMENTS = ("development", "dev", "local")
LOG_FORMATS = ("console", "json")


class ColoredJSONRenderer:
    """JSON renderer that tints each line by level, for JSON output on a terminal."""

    COLOR_CODES = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET_CODE = "\033[0m"

    def __init__(self, colors: bool = False):
        self.colors = colors
        self.json_renderer = structlog.processors.JSONRenderer(sort_keys=True)

    def __call__(self, logger: Any, method_name: str, event_dict: dict[str, Any]) -> str:
        json_output = str(self.json_renderer(logger, method_name, event_dict))
        if not self.colors:
            return json_output

        color = self.COLOR_CODES.get(str(event_dict.get("level", "")).upper(), "")
        return f"{color}{json_output}{self.RESET_CODE}"


def get_log_level() -> int:
    """
    Get log level from the LOG_LEVEL environment variable.

    Returns:
        int: Log level constant from the logging module (INFO when unset or unknown)
    """
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
    # getLevelName maps unknown names to a "Level x" string
    return level if isinstance(level, int) else logging.INFO


def is_development_environment() -> bool:
    return os.getenv("ENVIRONMENT", "development").lower() in DEVELOPMENT_ENVIRONMENTS


def get_log_format() -> str:
    """
    Resolve the output format.

    LOG_FORMAT wins when it names a known format; otherwise development
    environments get ``console`` and everything else gets ``json``.
    """
    requested = os.getenv("LOG_FORMAT", "").lower()
    if requested in LOG_FORMATS:
        return requested
    return "console" if is_development_environment() else "json"


def build_renderer(log_format: str, use_colors: bool) -> Any:
    """
    Pick the final processor of the chain.

    Args:
        log_format: ``console`` or ``json``
        use_colors: Whether the stream is an interactive terminal
    """
    if log_format == "console":
        return structlog.dev.ConsoleRenderer(colors=use_colors)
    if use_colors:
        return ColoredJSONRenderer(colors=True)
    return structlog.processors.JSONRenderer()


def configure_structured_logging() -> None:
    """
    Configure structured logging for the whole process.

    Safe to call more than once; the CLI calls it before every task.
    """
    log_level = get_log_level()
    log_format = get_log_format()
    use_colors = sys.stderr.isatty()

    # structlog does the formatting; stdlib logging only routes and filters
    logging.basicConfig(level=log_level, format="%(message)s", stream=sys.stderr, force=True)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        build_renderer(log_format, use_colors),
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    structlog.get_logger("eventgallery.logging").info(
        "logging_configured",
        log_level=logging.getLevelName(log_level),
        log_format=log_format,
        environment=os.getenv("ENVIRONMENT", "development"),
        colors_enabled=use_colors,
    )


def get_logger(name: str | None = None) -> Any:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (optional, defaults to the calling module)

    Returns:
        structlog.BoundLogger: Configured logger instance
    """
    if name is None:
        import inspect

        frame = inspect.currentframe()
        if frame and frame.f_back:
            name = frame.f_back.f_globals.get("__name__", "unknown")

    return structlog.get_logger(name)


def log_performance(operation: str, duration: float, **context: Any) -> None:
    """Record how long a bulk operation took, in seconds."""
    logger = get_logger("eventgallery.performance")
    logger.info("performance_metric", operation=operation, duration_seconds=round(duration, 4), **context)


def log_error(error: Exception, context: dict[str, Any] | None = None) -> None:
    """
    Log an error with structured context.

    Called by ``GalleryError`` on construction, so every raised gallery error
    leaves one ``error_occurred`` record.

    Args:
        error: Exception that occurred
        context: Additional context information
    """
    logger = get_logger("eventgallery.errors")

    error_context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }

    if context:
        error_context.update(context)

    logger.error("error_occurred", **error_context)


def log_admin_action(action: str, **context: Any) -> None:
    """
    Log destructive operator actions (bulk wipe) for the audit trail.

    Args:
        action: Action performed
        **context: Additional context information
    """
    logger = get_logger("eventgallery.admin")
    logger.warning("admin_action", action=action, **context)
