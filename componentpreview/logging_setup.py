"""Logger configuration for the command-line front door."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from .config import DEFAULT_LOG_PATH

LOGGER_NAME = "componentpreview"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False, log_file: Path | None = DEFAULT_LOG_PATH) -> logging.Logger:
    """Attach a rotating file handler and, when ``verbose``, a stderr handler.

    Calling it again replaces previously installed handlers. A log file that
    cannot be created is skipped rather than failing the command.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT)

    if log_file is not None:
        resolved = Path(log_file).expanduser()
        try:
            resolved.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                resolved,
                maxBytes=1024 * 1024,
                backupCount=3,
                encoding="utf-8",
            )
        except OSError:
            file_handler = None
        if file_handler is not None:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    if verbose:
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(logging.DEBUG)
        stream_handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        logger.addHandler(stream_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return logger
