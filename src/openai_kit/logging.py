"""Logging setup for the client."""

import sys

from loguru import logger

# Library code logs through loguru but stays silent until the host opts in.
logger.disable("openai_kit")


def configure_logging(verbose: bool) -> None:
    """Configure Loguru logging level and sinks.

    Args:
        verbose: Enable DEBUG logging when True, otherwise INFO.
    """
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(sys.stderr, level=level)
    logger.enable("openai_kit")


def excerpt(content: bytes, limit: int = 500) -> str:
    """Return a shortened, decoded preview of a response body."""
    return content[:limit].decode("utf-8", errors="ignore")
