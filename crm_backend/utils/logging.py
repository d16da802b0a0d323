"""
Logging setup for the API, the migration tooling and the scripts.

What may be logged: request-level events ("Client created", "Migration
applied"), row and user ids, policy outcomes (table, verb, caller).

What must not: bearer tokens or keys, journal or chat content, deal values
and payment amounts at INFO or above.
"""

import logging
from typing import Optional, Union

from crm_backend.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(level: Union[int, str, None]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName((level or settings.LOG_LEVEL).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: Union[int, str, None] = None) -> None:
    """Configure the root logger once, for the API process or a script."""
    logging.basicConfig(level=_resolve_level(level), format=LOG_FORMAT, datefmt=DATE_FORMAT)


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Logger for a module that may run outside the API process.

    Loggers obtained here carry their own handler so the migration runner
    and the scripts print even when configure_logging() was never called.
    Messages are not propagated to the root logger, so they are not printed
    twice when it is configured.

    Usage:
        >>> logger = get_logger(__name__)
        >>> logger.info("Migration 0003_reconcile_client_ownership applied")
    """
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    return logger
