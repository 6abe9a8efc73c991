"""
Default settings of the mask engine and logging setup for applications.
"""

import logging
from typing import Optional

# Fourth channel of blank rasters and of encode(); painting never touches it.
RESERVED_VALUE = 0

# Instance numbers are stored on two bytes.
MAX_INSTANCE_NUMBER = 65535

# Display colors (RGB)
FALLBACK_COLOR = (255, 0, 255)
LOCK_TINT_COLOR = (255, 255, 255)
LOCK_TINT_ALPHA = 0.5

DEFAULT_BRUSH_RADIUS = 5
DEFAULT_MIN_BLOB_SIZE = 10
DEFAULT_VISU_MODE = "semantic"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configure the root logger.

    Args:
        log_level: Log level name (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path of a log file, written in UTF-8
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    handlers = [console_handler]

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
