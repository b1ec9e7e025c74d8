"""
Logging setup with per-request correlation IDs.

Provides a consistent logging format for every module of the proxy
so that a single request can be followed through the log.
"""

import logging
import uuid


def setup_logging(name: str, level: str = "INFO") -> logging.Logger:
    """
    Configure logging and return a named logger.

    Args:
        name: Logger name (module path, e.g. 'gateway.dispatcher').
        level: Log level string (e.g. 'INFO', 'DEBUG').

    Returns:
        Configured logger instance.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s  %(name)-30s  %(levelname)-7s  %(message)s",
    )
    return logging.getLogger(name)


def generate_correlation_id() -> str:
    """Generate a short unique ID for tracing one request through the logs."""
    return uuid.uuid4().hex[:12]
