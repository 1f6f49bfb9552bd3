"""Logging helper shared by all modules."""
from __future__ import annotations
import logging
import sys


def get_logger(name, level=logging.INFO):
    """Return a configured logger writing to stdout."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if not logger.handlers:
        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


__all__ = ["get_logger"]
