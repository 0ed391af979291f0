"""
Logging setup for the Aurora core.

Console logging is always installed; a rotating file log is added when a
log directory is configured.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'
DATE_FORMAT = '%Y-%m-%dT%H:%M:%S'


def configure_logging(level: str = 'INFO', log_dir: Optional[str] = None) -> logging.Logger:
    """Configure the 'aurora' logger exactly once.

    Args:
        level: Log level name (DEBUG, INFO, ...)
        log_dir: Optional directory for a rotating aurora.log

    Returns:
        The configured 'aurora' logger
    """
    logger = logging.getLogger('aurora')
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    if logger.handlers:
        # Respect an existing configuration
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, 'aurora.log'),
            maxBytes=5 * 1024 * 1024,  # 5 MB per file
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
