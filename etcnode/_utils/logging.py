import logging
import sys
from typing import Dict

LOG_FORMATTER = logging.Formatter(
    fmt='%(levelname)8s  %(asctime)s  %(name)20s  %(message)s',
    datefmt='%m-%d %H:%M:%S',
)

# geth style 0=silent ... 6=detail
VERBOSITY_LEVELS: Dict[int, int] = {
    0: logging.CRITICAL + 10,
    1: logging.ERROR,
    2: logging.WARNING,
    3: logging.INFO,
    4: logging.DEBUG,
    5: logging.DEBUG,
    6: logging.DEBUG - 2,
}


def verbosity_to_level(verbosity: int) -> int:
    bounded = min(max(verbosity, 0), max(VERBOSITY_LEVELS))
    return VERBOSITY_LEVELS[bounded]


def setup_stderr_logging(level: int) -> logging.StreamHandler:
    """
    Install a single stderr handler on the ``etcnode`` logger, replacing one
    installed by a previous call.
    """
    logger = logging.getLogger('etcnode')

    for handler in list(logger.handlers):
        if getattr(handler, '_etcnode_stderr', False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(LOG_FORMATTER)
    handler._etcnode_stderr = True  # type: ignore

    logger.addHandler(handler)
    logger.setLevel(min(level, logging.DEBUG))
    return handler
