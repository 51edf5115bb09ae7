"""Logger setup shared by the pipeline, the processors and the CLI.

Loggers write to stdout. ``LOG_LEVEL`` picks the threshold and ``LOG_FORMAT``
picks between the ``structured`` and ``simple`` layouts below.
"""

import os
import sys
import logging
import threading
from typing import Optional

DEFAULT_LOGGER_NAME = "foodless-pipeline"

LOG_FORMATS = {
    "structured": (
        "%(asctime)s | %(name)s | %(levelname)-8s | "
        "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s"
    ),
    "simple": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}
STRUCTURED_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
HANDLER_NAME = "foodless-pipeline-stdout"


def _resolve_level(level: Optional[str]) -> int:
    # Unknown names fall back to INFO rather than failing at import time.
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def _build_handler(format_type: str) -> logging.Handler:
    layout = os.getenv("LOG_FORMAT", format_type).lower()
    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    if layout == "structured":
        handler.setFormatter(logging.Formatter(LOG_FORMATS["structured"], datefmt=STRUCTURED_DATE_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(LOG_FORMATS["simple"]))
    return handler


def setup_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: Optional[str] = None,
    format_type: str = "structured",
) -> logging.Logger:
    """
    Return the named logger, attaching a stdout handler on first use.

    ``level`` wins over ``LOG_LEVEL``; ``LOG_FORMAT`` wins over ``format_type``.
    Calling this again for the same name only updates the level.
    """
    configured = logging.getLogger(name)
    configured.setLevel(_resolve_level(level))

    # Handlers added by other tools (e.g. test log capture) do not count.
    if not any(h.get_name() == HANDLER_NAME for h in configured.handlers):
        configured.addHandler(_build_handler(format_type))

    configured.propagate = False
    return configured


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    return setup_logger(name)


def configure_worker_logging() -> logging.Logger:
    """Thread pool initializer: gives each worker thread its own child logger."""
    worker_logger = setup_logger(f"{DEFAULT_LOGGER_NAME}.{threading.current_thread().name}")
    worker_logger.debug("Worker started")
    return worker_logger


logger = setup_logger()
