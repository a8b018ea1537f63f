"""
Logging setup and helpers for the racetime.gg announcer bot.

Logs go through structlog. Text output is rendered by rich for local runs;
JSON output is meant for hosted deployments where a collector parses
stdout.

Besides ``get_logger`` and ``log_error`` the module offers a few helpers
used across the bot:
- ``log_api_request`` / ``log_api_response`` for racetime.gg traffic
- ``polling_pass`` to time a refresh or cleanup pass and tag every line
  logged inside it with a pass id
- ``log_discord_event`` for bot lifecycle and command events
"""

import json
import logging
import sys
import time
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional
from urllib.parse import urlparse

import structlog
from rich.console import Console
from rich.logging import RichHandler

from racetime_announcer.config import LoggingConfig

# Keys rendered by the handler itself rather than appended to the message
_RICH_HIDDEN_KEYS = {"timestamp", "level", "filename", "lineno"}


def setup_logging(config: LoggingConfig) -> None:
    """
    Configure the root logger and structlog from ``config``.

    Example:
        ```python
        config = load_config()
        setup_logging(config.logging)
        get_logger(__name__).info("Bot starting")
        ```
    """
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(config.level)

    if config.format == "json":
        handler = _json_handler()
        renderer = _render_json
    else:
        handler = _rich_handler()
        renderer = _render_text
    handler.setLevel(config.level)
    root.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.CallsiteParameterAdder(
                parameters=[structlog.processors.CallsiteParameter.FILENAME,
                            structlog.processors.CallsiteParameter.LINENO]
            ),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, config.level)
        ),
        logger_factory=structlog.WriteLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    quiet_library_loggers()


def _json_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        fmt='{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
            '"logger": "%(name)s", "message": "%(message)s"}',
        datefmt="%Y-%m-%dT%H:%M:%SZ"
    ))
    return handler


def _rich_handler() -> logging.Handler:
    return RichHandler(
        console=Console(force_terminal=True, width=120),
        show_time=True,
        show_level=True,
        show_path=True,
        markup=False,
        rich_tracebacks=True,
    )


def _render_json(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> str:
    return json.dumps(event_dict, default=str)


def _render_text(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> str:
    """Render ``event (key=value, ...)``."""
    message = event_dict.pop("event", "")
    extras = [f"{key}={value}" for key, value in event_dict.items()
              if key not in _RICH_HIDDEN_KEYS]
    if extras:
        message += f" ({', '.join(extras)})"
    return message


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """
    Get a structlog logger.

    Example:
        ```python
        logger = get_logger(__name__)
        logger.info("Announced race", race="ootr/clever-link-1234", channel_id="42")
        ```
    """
    return structlog.get_logger(name)


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    """
    Log an exception that was handled, with its type and message.

    Args:
        error: The exception that occurred
        context: Additional context information
    """
    fields = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }
    if context:
        fields.update(context)

    get_logger().error("Exception occurred", **fields)


def generate_correlation_id() -> str:
    """Short random id tying related log lines together."""
    return uuid.uuid4().hex[:8]


def log_api_request(url: str, correlation_id: Optional[str] = None) -> None:
    """Log an outgoing racetime.gg GET."""
    parsed = urlparse(url)
    get_logger("racetime.http").debug(
        "racetime.gg request",
        host=parsed.netloc,
        path=parsed.path,
        correlation_id=correlation_id or "none",
    )


def log_api_response(
    url: str,
    status_code: int,
    elapsed_ms: float,
    size: Optional[int] = None,
    error: Optional[str] = None,
    correlation_id: Optional[str] = None,
) -> None:
    """
    Log the outcome of a racetime.gg GET.

    Successful responses are debug output since every polling pass makes
    them. Client errors are warnings. Server errors and requests that got
    no response at all (``status_code`` 0) are errors.
    """
    logger = get_logger("racetime.http")
    fields: Dict[str, Any] = {
        "path": urlparse(url).path,
        "status_code": status_code,
        "elapsed_ms": round(elapsed_ms, 2),
        "correlation_id": correlation_id or "none",
    }
    if size is not None:
        fields["size_bytes"] = size

    if error or status_code == 0 or status_code >= 500:
        fields["error"] = error
        logger.error("racetime.gg request failed", **fields)
    elif status_code >= 400:
        logger.warning("racetime.gg request rejected", **fields)
    else:
        logger.debug("racetime.gg response", **fields)


@contextmanager
def polling_pass(name: str) -> Iterator[str]:
    """
    Time one polling pass and bind a pass id to everything logged inside it.

    Exceptions are logged and re-raised.

    Example:
        ```python
        with polling_pass("refresh"):
            await tracker.refresh()
        ```
    """
    pass_id = generate_correlation_id()
    logger = get_logger(__name__)
    started = time.monotonic()

    with structlog.contextvars.bound_contextvars(polling_pass=name, pass_id=pass_id):
        logger.debug("Polling pass started")
        try:
            yield pass_id
        except Exception as e:
            logger.error(
                "Polling pass failed",
                duration_ms=round((time.monotonic() - started) * 1000, 2),
                error_type=type(e).__name__,
                error_message=str(e),
            )
            raise
        logger.debug(
            "Polling pass finished",
            duration_ms=round((time.monotonic() - started) * 1000, 2),
        )


def log_discord_event(event_type: str, **context: Any) -> None:
    """Log a bot lifecycle or command event at info level."""
    get_logger("discord").info(
        f"Discord event: {event_type}",
        event_type=event_type,
        **context
    )


def quiet_library_loggers() -> None:
    """Raise the level of chatty third-party loggers."""
    for name in ("discord", "discord.http", "aiohttp", "aiohttp.access", "asyncio"):
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("discord.gateway").setLevel(logging.INFO)
