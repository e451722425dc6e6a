"""Logger construction for the service.

Two output formats are supported on standard output:

- ``console``: human-readable lines rendered by :mod:`rich`.
- ``json``: one JSON object per line rendered by :mod:`structlog`.

The returned logger is handed to the components that need one. Each
component receives a child of it named after its own concern, e.g.
``dummy_wallet.service.auth``.
"""

from __future__ import annotations

import logging
import sys

import structlog
from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "dummy_wallet"

SUPPORTED_LOG_FORMATS = ("console", "json")

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def parse_log_level(level: str) -> int:
    """Map a user-facing level name to a :mod:`logging` level.

    Raises ``ValueError`` on unsupported names.
    """
    try:
        return _LEVELS[level.strip().lower()]
    except KeyError:
        raise ValueError(
            f"unsupported log level '{level}', supported levels: "
            f"{', '.join(sorted(_LEVELS))}"
        ) from None


def _json_formatter() -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.ExtraAdder(),
            structlog.processors.TimeStamper(fmt="iso"),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
    )


def build_logger(level: str = "info", fmt: str = "console") -> logging.Logger:
    """Build the project logger for the given level and output format.

    Calling it again replaces the handlers installed by a previous call.
    """
    log_level = parse_log_level(level)

    if fmt == "json":
        handler: logging.Handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(_json_formatter())
    elif fmt == "console":
        handler = RichHandler(
            console=Console(file=sys.stdout),
            show_path=False,
            rich_tracebacks=True,
        )
    else:
        raise ValueError(
            f"unsupported log format '{fmt}', supported formats: "
            f"{', '.join(SUPPORTED_LOG_FORMATS)}"
        )

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(log_level)
    logger.propagate = False

    # Quiet noisy third-party loggers
    for name in ("uvicorn.access", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger
