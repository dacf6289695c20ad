"""
Shared helpers.
"""
import logging
import sys

from workhub.core import config


_configured = False


def get_logger(name: str) -> logging.Logger:
    """
    Return a module logger.

    The root ``workhub`` handler is installed on first use so every module
    logs through the same stream and level.
    """
    global _configured
    if not _configured:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
        root = logging.getLogger("workhub")
        root.addHandler(handler)
        root.setLevel(config.LOG_LEVEL)
        _configured = True
    if not name.startswith("workhub"):
        name = f"workhub.{name}"
    return logging.getLogger(name)
