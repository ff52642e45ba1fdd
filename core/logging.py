"""
Unified Logging Configuration

This module sets up a centralized logging system for the client library.
All modules should import and use the logger from this module instead of
using print() statements.

Usage:
    from core.logging import get_logger

    logger = get_logger(__name__)
    logger.debug("Detailed debugging information")
    logger.warning("Rate limited, entering cooldown")

Log Levels (from most to least verbose):
    DEBUG    - Request/response traces, pacing sleeps
    INFO     - General informational messages (e.g., "Fetched 212 symbols")
    WARNING  - Rate limit rejections and retries
    ERROR    - Application errors returned by the exchange
    CRITICAL - Not used by the library itself

Configuration:
    Importing the library never touches the root logger: the "cryptoclient"
    logger only gets a NullHandler. Applications (and scripts/) call
    setup_logging() once, typically with the LOG_LEVEL setting from .env.
"""

import logging
import sys
from typing import Optional


def setup_logging(
    log_level: str = "INFO",
    log_format: Optional[str] = None,
    include_timestamp: bool = True,
    include_module: bool = True
) -> logging.Logger:
    """
    Configure root logging for an application and return the library logger.

    Replaces any handlers already on the root logger, so only entry points
    (scripts, services) should call this, never library code.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Custom log format string (uses default if None)
        include_timestamp: Include timestamp in log messages
        include_module: Include module name in log messages

    Returns:
        logging.Logger: Configured logger instance

    Example:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Client started")
        2024-01-01 12:00:00 [INFO] cryptoclient Client started
    """
    if log_format is None:
        format_parts = []

        if include_timestamp:
            format_parts.append("%(asctime)s")

        format_parts.append("[%(levelname)s]")

        if include_module:
            format_parts.append("%(name)s")

        format_parts.append("%(message)s")

        log_format = " ".join(format_parts)

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True
    )

    logger = logging.getLogger("cryptoclient")
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    return logger


# ============================================
# Library Logger
# ============================================

logger = logging.getLogger("cryptoclient")
if not any(isinstance(h, logging.NullHandler) for h in logger.handlers):
    logger.addHandler(logging.NullHandler())


# ============================================
# Convenience Functions
# ============================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module or component.

    Args:
        name: Name for the logger (typically __name__)

    Returns:
        logging.Logger: Logger instance for the specified name

    Example:
        # In core/dispatcher.py:
        logger = get_logger(__name__)  # "cryptoclient.core.dispatcher"
    """
    return logging.getLogger(f"cryptoclient.{name}")


def set_log_level(level: str) -> None:
    """
    Change the library log level at runtime.

    Only the "cryptoclient" logger is touched; handlers and the root level
    belong to the application.

    Args:
        level: New log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))


# ============================================
# Log Helper Functions
# ============================================

def log_api_request(exchange: str, method: str, path: str, params: dict = None) -> None:
    """
    Log an API request with consistent formatting.

    Only business parameters should be passed here, never signed fields.

    Example:
        >>> log_api_request("cryptocom", "GET", "public/get-book", {"instrument_name": "ETH_BTC"})
        [DEBUG] API Request: cryptocom GET public/get-book | Params: {'instrument_name': 'ETH_BTC'}
    """
    if params:
        logger.debug(f"API Request: {exchange} {method} {path} | Params: {params}")
    else:
        logger.debug(f"API Request: {exchange} {method} {path}")


def log_api_response(exchange: str, method: str, path: str, status: int, response_time: float = None) -> None:
    """
    Log an API response with status and timing information.

    Example:
        >>> log_api_response("cryptocom", "GET", "public/get-book", 200, 0.342)
        [DEBUG] API Response: cryptocom GET public/get-book | Status: 200 | Time: 0.342s
    """
    time_str = f" | Time: {response_time:.3f}s" if response_time else ""
    logger.debug(f"API Response: {exchange} {method} {path} | Status: {status}{time_str}")

