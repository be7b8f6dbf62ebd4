import sys
from loguru import logger

from probate_monitor.core.config import settings

def configure_logging(level: str = None, log_file: str = None) -> None:
    """Route loguru output to stderr and a rotating log file"""
    logger.remove()
    logger.add(sys.stderr, level=level or settings.LOG_LEVEL)
    if log_file is None:
        log_file = settings.LOG_FILE
    if log_file:
        logger.add(log_file, rotation=settings.LOG_ROTATION, level=level or settings.LOG_LEVEL)
