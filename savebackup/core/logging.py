"""Logging utilities for savebackup modules."""

import logging

ROOT_LOGGER_NAME = 'savebackup'


def get_logger(name: str = None) -> logging.Logger:
    """Get a logger that automatically inherits from root logger.

    Names are placed under the ``savebackup`` namespace so that
    ``setup_logging()`` and the CLI handler reach every module.
    The logger will:
    - Propagate to root logger (default behavior)
    - Only set a default level if root logger has no handlers

    Args:
        name: Logger name, with or without the ``savebackup.`` prefix

    Returns:
        Configured logger instance
    """
    if not name:
        full_name = ROOT_LOGGER_NAME
    elif name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + '.'):
        full_name = name
    else:
        full_name = f"{ROOT_LOGGER_NAME}.{name}"

    logger = logging.getLogger(full_name)
    logger.propagate = True

    # Only set default level if root logger has no handlers
    # (i.e., basicConfig hasn't been called yet)
    root_logger = logging.getLogger()
    if not root_logger.handlers and logger.level == logging.NOTSET:
        logger.setLevel(logging.WARNING)

    return logger
