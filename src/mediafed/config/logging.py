"""Logging setup for the CLI and the HTTP server."""

from __future__ import annotations

import logging

from .env import optional_env

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_NOISY_LOGGERS = ("httpx", "httpcore")


def resolve_log_level(default: int = logging.INFO) -> int:
    """Level named by ``MEDIAFED_LOG_LEVEL`` (e.g. ``debug``), or ``default``."""

    name = optional_env("MEDIAFED_LOG_LEVEL")
    if name is None:
        return default
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else default


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Configure the root logger with the terse mediafed format.

    Request lines from httpx are only shown at DEBUG; peer calls are logged by
    the peer client itself. Pass ``force=True`` to reconfigure in tests.
    """

    effective = level if level is not None else resolve_log_level()
    logging.basicConfig(level=effective, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(effective, logging.WARNING))
