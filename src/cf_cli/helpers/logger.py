"""Logging configuration for the Common Fate provider CLI."""

import logging
import os
import sys
from typing import Optional

DEFAULT_LOG_LEVEL = "INFO"
LOG_LEVEL_ENV_VARS = ("CF_LOG", "CF_LOG_LEVEL")


def setup_logger(name: str, level: str = DEFAULT_LOG_LEVEL) -> logging.Logger:
    """
    Set up logger with appropriate handlers.

    Logs always go to stderr so that command output on stdout (tables,
    bucket names, template URLs) can be piped into other tools.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    # Clear existing handlers
    logger.handlers.clear()

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    handler.setFormatter(formatter)

    logger.addHandler(handler)
    logger.propagate = False

    return logger


def resolve_log_level(cli_level: Optional[str] = None) -> str:
    """Pick the log level: CLI option > CF_LOG > CF_LOG_LEVEL > default."""
    if cli_level:
        return cli_level.upper()
    for env_var in LOG_LEVEL_ENV_VARS:
        if os.environ.get(env_var):
            return os.environ[env_var].upper()
    return DEFAULT_LOG_LEVEL


def get_logger(name: str) -> logging.Logger:
    """Get a child of the ``cf_cli`` logger.

    Child loggers propagate to the ``cf_cli`` logger configured by
    ``setup_logger`` in the CLI entry point.
    """
    return logging.getLogger(f"cf_cli.{name}")
