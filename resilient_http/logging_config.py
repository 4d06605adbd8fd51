"""Logging configuration using loguru

The package disables its own loguru records on import, so an application that
never calls setup_logging() sees nothing from the client.
"""

import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

PACKAGE_NAME = "resilient_http"

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan> | <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"

DEFAULT_HANDLER_ID = 0

_installed_handlers: List[int] = []


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """
    Route client logs (attempts, retries, breaker transitions) to stdout.

    Args:
        verbose: Also show DEBUG records (every attempt, cache stores)
        log_file: Optional file that receives DEBUG and above, rotated at 100 MB
    """
    # Loguru's default stderr handler plus our own sinks from an earlier call;
    # sinks the application added itself stay in place
    for handler_id in [DEFAULT_HANDLER_ID, *_installed_handlers]:
        _remove_handler(handler_id)
    _installed_handlers.clear()

    logger.enable(PACKAGE_NAME)

    _installed_handlers.append(
        logger.add(
            sys.stdout,
            format=CONSOLE_FORMAT,
            level="DEBUG" if verbose else "INFO",
            colorize=True,
        )
    )

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler_id = logger.add(
            log_file,
            format=FILE_FORMAT,
            level="DEBUG",
            rotation="100 MB",
            retention="30 days",
            compression="zip",
            enqueue=True,
        )
        _installed_handlers.append(handler_id)
        logger.info(f"Logging to file: {log_file}")


def _remove_handler(handler_id: int) -> None:
    try:
        logger.remove(handler_id)
    except ValueError:
        # Already removed, by an earlier call or by the application
        pass


def disable_logging() -> None:
    """Silence the client again without touching the application's sinks"""
    logger.disable(PACKAGE_NAME)
