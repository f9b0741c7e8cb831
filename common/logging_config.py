import logging
import os
import sys
from typing import Optional, TextIO


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def resolve_level(log_level: Optional[str] = None) -> int:
    """Numeric level for a name like 'debug'; LOG_LEVEL env var when unset, INFO when unknown."""
    name = (log_level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    return getattr(logging, name, logging.INFO)


def _stream_handler(level: int, stream: Optional[TextIO]) -> logging.Handler:
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    return handler


def setup_logging(
    component_name: str,
    log_level: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Attach a stdout handler to a top-level component logger.

    Modules log through get_logger(__name__), so records from e.g.
    filestore.streaming reach the handler installed for 'filestore'.
    Calling this again for the same component only adjusts the level.

    Args:
        component_name: 'api', 'cli' or 'filestore'
        log_level: DEBUG, INFO, WARNING or ERROR
        stream: Handler output, stdout by default

    Returns:
        The component logger
    """
    level = resolve_level(log_level)

    component_logger = logging.getLogger(component_name)
    component_logger.setLevel(level)

    if component_logger.handlers:
        for existing in component_logger.handlers:
            existing.setLevel(level)
    else:
        component_logger.addHandler(_stream_handler(level, stream))
        component_logger.propagate = False

    return component_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
