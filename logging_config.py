"""
logging_config.py
=================
One place to configure the ``tweetbands.*`` loggers for the CLIs and GUI.

Library modules only ever call ``logging.getLogger("tweetbands.<module>")``;
the scripts call ``setup_logging`` once at start-up.  User-facing progress
stays on ``print`` – the log carries warnings (dropped records, duplicate
ids, ignored clicks) and, with ``-v``, per-stage timings.

Usage
-----
    from logging_config import setup_logging
    setup_logging("debug" if args.verbose else "warning")
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, Union

LOGGER_NAME = "tweetbands"

_FORMAT = "%(asctime)s  %(levelname)-7s  %(name)s: %(message)s"
_DATEFMT = "%H:%M:%S"


def _as_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level {level!r}")
    return value


def setup_logging(level: Union[int, str] = logging.INFO,
                  log_file: Optional[str] = None) -> logging.Logger:
    """Route ``tweetbands`` log records to stdout (and optionally a file).

    Parameters
    ----------
    level    : int or level name ("debug", "warning", …).
    log_file : extra destination, truncated on each run.

    Returns
    -------
    The configured ``tweetbands`` logger.  Calling this again replaces its
    handlers rather than stacking new ones.
    """
    lvl = _as_level(level)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(lvl)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(_FORMAT, datefmt=_DATEFMT)
    targets: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        targets.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))
    for handler in targets:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.debug("Logging to %s at %s.",
                 "stdout" + (f" and {log_file}" if log_file else ""),
                 logging.getLevelName(lvl))
    return logger
