"""Logging setup shared by the library and the ``rgdemux`` command."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

PACKAGE_LOGGER = "rgdemux"
DEFAULT_LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s]: %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_log_level(level: Union[int, str]) -> int:
    """Accept ``logging`` constants or level names in any case."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def _has_file_handler(logger: logging.Logger, path: Path) -> bool:
    return any(
        isinstance(h, logging.FileHandler) and Path(h.baseFilename) == path.absolute()
        for h in logger.handlers
    )


def _add_file_handler(logger: logging.Logger, path: Path, formatter: logging.Formatter) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path)
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def setup_logging(
    level: Union[int, str] = logging.INFO,
    fmt: str = DEFAULT_LOG_FORMAT,
    datefmt: str = DEFAULT_DATE_FORMAT,
    log_file: Optional[Union[str, Path]] = None,
    reconfigure: bool = False,
) -> logging.Logger:
    """
    Configure the ``rgdemux`` package logger.

    The first call attaches a stderr handler (and a file handler when
    ``log_file`` is given). Later calls only update the level and add a
    missing file handler, unless ``reconfigure`` drops the existing handlers.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    if reconfigure:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    if not logger.handlers:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)
        logger.propagate = False

    if log_file is not None and not _has_file_handler(logger, Path(log_file)):
        _add_file_handler(logger, Path(log_file), formatter)

    logger.setLevel(parse_log_level(level))
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
