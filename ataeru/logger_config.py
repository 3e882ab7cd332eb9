import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = "ataeru"


def _has_handler(logger: logging.Logger, handler_type: type) -> bool:
    return any(type(h) is handler_type for h in logger.handlers)


def setup_logger(log_dir: Optional[Union[str, Path]] = None) -> logging.Logger:
    """Configure the ``ataeru`` logger.

    The console handler is always attached. The file handler is attached
    once a log directory is known, so startup errors raised before the
    configuration is loaded still reach the console. Repeated calls do not
    add handlers.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Console handler (for basic logging)
    if not _has_handler(logger, logging.StreamHandler):
        console_formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s'
        )
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)

    # File handler (for detailed logging)
    if log_dir is not None and not _has_handler(logger, logging.FileHandler):
        # Create logs directory if it doesn't exist
        logs_dir = Path(log_dir)
        logs_dir.mkdir(parents=True, exist_ok=True)

        file_formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
        )
        file_handler = logging.FileHandler(logs_dir / "ataeru.log")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    return logger
