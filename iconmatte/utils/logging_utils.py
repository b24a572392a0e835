"""Logging setup for the command-line tool."""

import logging
from pathlib import Path
from typing import Optional, Union

from colorlog import ColoredFormatter


LOGGER_NAME = "iconmatte"


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_dir: Optional[Path] = None
) -> logging.Logger:
    """
    Configure the package logger.

    Adds a colored console handler and, when ``log_dir`` is given, a plain
    file handler writing ``iconmatte.log``. Calling it again only updates
    the level.

    Args:
        level: Logging level (int or name such as "DEBUG").
        log_dir: Optional directory for the log file.

    Returns:
        The configured "iconmatte" logger.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    if not logger.handlers:
        # Console handler (colored)
        ch = logging.StreamHandler()
        ch.setFormatter(ColoredFormatter(
            "%(log_color)s%(asctime)s | %(levelname)-8s | %(message)s",
            datefmt="%H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "white",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        ))
        logger.addHandler(ch)

        # File handler (plain)
        if log_dir is not None:
            log_dir.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(log_dir / "iconmatte.log", encoding="utf-8")
            fh.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))
            logger.addHandler(fh)

    for handler in logger.handlers:
        handler.setLevel(level)

    return logger
