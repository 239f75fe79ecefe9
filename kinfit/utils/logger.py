"""
Logging utility for the kinematic fit package.
"""

import logging
import os
from datetime import datetime


LOGGER_NAME = 'KinFit'


def setup_logger(log_dir=None, log_level=logging.INFO):
    """
    Set up the package logger, writing to the console and optionally to a file.

    Parameters
    ----------
    log_dir : str, optional
        Directory to store log files. If None, no log file is written.
    log_level : int
        Logging level (logging.DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns
    -------
    logger : logging.Logger
        Configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    logger.handlers = []

    if log_dir is not None:
        if not os.path.exists(log_dir):
            os.makedirs(log_dir)

        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        log_file = os.path.join(log_dir, f'kinfit_{timestamp}.log')

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

        logger.info("=" * 60)
        logger.info("Kinematic fit logging started")
        logger.info(f"Log file: {log_file}")
        logger.info("=" * 60)

    # Console handler (only warnings and errors)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_formatter = logging.Formatter('%(levelname)s: %(message)s')
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    return logger


# Global logger instance
_logger = None


def get_logger():
    """Get or create the package logger instance."""
    global _logger
    if _logger is None:
        _logger = setup_logger()
    return _logger
