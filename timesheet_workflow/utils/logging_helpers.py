# -------------------- LOGGING UTILITIES --------------------
import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(lineno)d] %(message)s"


def get_logger(name: str, level=None):
    """Get configured logger instance"""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(LOG_FORMAT)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logger.setLevel(level)
    return logger
