#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import logging
import sys
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from . import LOGGER_NAME

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

# chatty libraries underneath requests; only shown when the bridge runs at DEBUG
NOISY_LOGGERS = ("urllib3",)

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def parse_log_level(s: str) -> int:
    """Level name ("warn", "DEBUG", ...) or number; INFO when unknown."""
    s = (s or "").strip().upper()
    if s.isdigit():
        return int(s)
    return _LEVELS.get(s, logging.INFO)


def resolve_tz(name: str):
    """Returns a tzinfo for `name`, or None (local time) if unknown or empty."""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None


class TZFormatter(logging.Formatter):
    """
    Timestamps as `2024-01-31 12:00:00.123 GMT+01:00`: milliseconds plus the
    UTC offset, so lines stay comparable across DST changes.
    """

    def __init__(self, fmt: str = LOG_FORMAT, tz=None):
        super().__init__(fmt=fmt, datefmt=None)
        self._tz = tz

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self._tz).astimezone(self._tz)
        offset = dt.strftime("%z")
        return f"{dt.strftime('%Y-%m-%d %H:%M:%S')}.{int(record.msecs):03d} GMT{offset[:3]}:{offset[3:]}"


def setup_logger(log_level: str, tz, stream=None, name: Optional[str] = None) -> logging.Logger:
    level = parse_log_level(log_level)

    logger = logging.getLogger(name or LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False

    h = logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(TZFormatter(LOG_FORMAT, tz))
    logger.addHandler(h)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)

    return logger
