import logging
import os
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def setup_logger(name: str = None, log_file: str = None, default_level: str = "WARNING"):
    """
    Sets up a logger based on the environment variable LOG_LEVEL. Falls back to default_level if not set.
    """
    log_level_str = os.getenv("LOG_LEVEL", default_level).upper()
    log_level = getattr(logging, log_level_str, logging.WARNING)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.handlers = []  # Clear existing handlers
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)

    return logger
