"""
Logging Configuration
=====================

Sets up the package logger.
"""

import logging
import sys
from typing import Optional


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the logger for the 'nlfea' namespace.

    Args:
        level: logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: optional path to also write the log to

    Returns:
        the configured package logger
    """
    logger = logging.getLogger("nlfea")
    logger.setLevel(level)

    # Avoid duplicated records when called more than once
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
