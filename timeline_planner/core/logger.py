"""
Logging setup shared by planner modules.

A single stderr handler lives on the package logger; module loggers
propagate to it.
"""

import logging
import sys

from timeline_planner.core.config import get_settings

_ROOT = "timeline_planner"
_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logger(name: str) -> logging.Logger:
    """
    Get a logger configured with the planner's handler and level.

    Args:
        name: Logger name, usually the module's __name__

    Returns:
        logging.Logger: Configured logger
    """
    log = logging.getLogger(name)
    is_child = name.startswith(_ROOT + ".")
    if not is_child and not log.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        log.addHandler(handler)
    settings = get_settings()
    log.setLevel(logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL)
    return log


logger = setup_logger(_ROOT)
