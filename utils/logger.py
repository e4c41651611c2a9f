"""
Logging configuration

Log records go to stderr (and to settings.LOG_FILE when set) so the reports
the command line prints on stdout can be redirected on their own.
"""
import logging
import os
import sys
from typing import Optional

from config.settings import settings


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _file_handler(path: str, formatter: logging.Formatter) -> logging.Handler:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    handler = logging.FileHandler(path, encoding='utf-8')
    handler.setFormatter(formatter)
    return handler


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get logger instance with configured settings

    Args:
        name: Logger name (typically __name__)
        level: Level name overriding settings.LOG_LEVEL

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    level_name = (level or settings.LOG_LEVEL).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if settings.LOG_FILE:
        logger.addHandler(_file_handler(settings.LOG_FILE, formatter))

    return logger
