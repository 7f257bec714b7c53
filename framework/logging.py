"""structlog configuration and game-event logging helpers.

Two output modes:
- Console (default): colored key/value output to stderr
- JSON (``json_output=True``): structured JSON lines to stderr
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from typing import Any

import structlog

LOGGER_NAME = "crossboard"


def configure_logging(*, level: str | int = "INFO", json_output: bool = False) -> None:
    """Configure structlog processors and route everything through stdlib logging."""
    if isinstance(level, str):
        resolved_level = logging.getLevelName(level.upper())
        if not isinstance(resolved_level, int):
            resolved_level = logging.INFO
    else:
        resolved_level = level

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    logging.getLogger(LOGGER_NAME).setLevel(resolved_level)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a logger under the ``crossboard`` namespace."""
    qualified = LOGGER_NAME if not name else f"{LOGGER_NAME}.{name}"
    return structlog.get_logger(qualified)


_game_logger = get_logger("game")


def log_game_event(event: str, level: str = "info", **data: Any) -> None:
    """Log a structured game event (session lifecycle, moves, rounds)."""
    log_method = getattr(_game_logger, level, _game_logger.info)
    log_method(
        "game_event",
        game_event=event,
        game_data=data,
        logged_at=datetime.now(tz=UTC).isoformat(),
    )
