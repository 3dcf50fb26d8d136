"""Logging setup utilities for keyloader.

Configures the 'keyloader' logger from the logging configuration
settings. uvicorn installs its own handlers for its access and error
logs, so the application logger keeps to its own handlers and does not
propagate to the root logger.
"""

from __future__ import annotations

import logging
import sys

from keyloader.config.settings import LoggingConfig

LOGGER_NAME = "keyloader"


def setup_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """Configure logging for the keyloader application.

    Safe to call more than once: handlers installed by an earlier call
    are replaced, so a config error followed by a reconfigure does not
    print every line twice.

    Args:
        config: Logging configuration. If None, uses defaults
                (INFO level, stderr output).

    Returns:
        The configured 'keyloader' logger.
    """
    if config is None:
        config = LoggingConfig()

    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    app_logger.propagate = False

    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(config.format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    if config.file:
        file_handler = logging.FileHandler(config.file)
        file_handler.setFormatter(formatter)
        app_logger.addHandler(file_handler)

    app_logger.debug("Logging initialized at %s level", config.level)
    return app_logger
