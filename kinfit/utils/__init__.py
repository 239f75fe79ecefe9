"""Utilities package. """

from .logger import LOGGER_NAME, get_logger, setup_logger

__all__ = [
    'LOGGER_NAME',
    'get_logger',
    'setup_logger',
]
