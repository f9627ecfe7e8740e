from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .request_data import RequestContextStore, request_store

LOGGER_NAME = "faultline"


class _RequestContextFilter(logging.Filter):
    def __init__(self, *, store: RequestContextStore) -> None:
        super().__init__()
        self._store = store

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        # Ensure `request_id` exists for formatter
        if not hasattr(record, "request_id"):
            setattr(record, "request_id", self._store.get().get("request_id", "-"))
        return True


def _stdout_handler(level: int) -> logging.Handler:
    handler = RichHandler(console=Console(file=sys.stdout), show_path=False)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def default_logger() -> logging.Logger:
    """
    Return the "faultline" logger, writing to stdout at INFO.

    Calling this repeatedly does not stack handlers.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        logger.propagate = False
        logger.addHandler(_stdout_handler(logging.INFO))
    return logger


def configure_logging(
    *,
    console_level: int = logging.INFO,
    log_file: Optional[Path] = None,
    file_level: int = logging.DEBUG,
    store: RequestContextStore = request_store,
) -> logging.Logger:
    """
    Configure console + optional file logging for the notifier.

    Returns
    -------
    logger
        The configured "faultline" logger. Pass it as ``Configuration.logger``.

    Usage example
    -------------
        logger = configure_logging(log_file=Path("logs/faultline.log"))
        config = Configuration(logger=logger)
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(min(console_level, file_level) if log_file is not None else console_level)
    logger.handlers.clear()
    for existing in logger.filters[:]:
        if isinstance(existing, _RequestContextFilter):
            logger.removeFilter(existing)
    logger.propagate = False

    logger.addFilter(_RequestContextFilter(store=store))
    logger.addHandler(_stdout_handler(console_level))

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)sZ | request=%(request_id)s | %(levelname)s | %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    logger.debug("Logging configured (log_file=%s)", str(log_file) if log_file else "-")
    return logger
