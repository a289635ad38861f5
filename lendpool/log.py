"""
log.py - Handler setup for the ``lendpool`` logger hierarchy

Library modules only create loggers (``logging.getLogger(__name__)``).
Applications attach handlers once, either directly with setup_logger or
from PoolSettings with configure_logging:

    settings = PoolSettings()
    configure_logging(settings)
    pool = LendingPool.from_settings(settings, ...)

What the pool emits:
    INFO     APPLIED <operation> (a boxed summary when verbose)
    WARNING  REJECTED <operation> for <account>: <reason>
    ERROR    ROLLBACK <operation>, COMPENSATION FAILED for <operation>
"""

import logging
import sys
from typing import Optional, Union

from .settings import PoolSettings


ROOT_LOGGER = "lendpool"
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def setup_logger(
    name: str = ROOT_LOGGER,
    level: Union[str, int] = "INFO",
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Attach a stdout handler (and optionally a file handler) to a logger.

    Repeated calls update the level and add only the handlers not yet
    attached, so a file can be added to an already configured logger.

    Raises:
        ValueError: if level is not a known logging level name
    """
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))

    targets = {getattr(h, "lendpool_target", None) for h in logger.handlers}
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers = []
    if "stdout" not in targets:
        handler = logging.StreamHandler(sys.stdout)
        handler.lendpool_target = "stdout"
        handlers.append(handler)
    if log_file and log_file not in targets:
        handler = logging.FileHandler(log_file)
        handler.lendpool_target = log_file
        handlers.append(handler)

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def configure_logging(settings: PoolSettings, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the ``lendpool`` logger from PoolSettings.

    With ``verbose`` set the level is lowered to INFO if needed, so the
    boxed operation summaries are not filtered out.
    """
    level = _resolve_level(settings.log_level)
    if settings.verbose:
        level = min(level, logging.INFO)
    return setup_logger(ROOT_LOGGER, level, log_file)
