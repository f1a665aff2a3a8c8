# core/logging.py
from __future__ import annotations
import logging
import os
from typing import Optional

FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _tune_transport_loggers() -> None:
    # websockets logs every frame at DEBUG; only surface that when asked for
    lvl = logging.DEBUG if os.getenv("LOG_WS_FRAMES", "false").strip().lower() in {"1", "true", "yes", "on"} else logging.WARNING
    logging.getLogger("websockets").setLevel(lvl)
    logging.getLogger("httpx").setLevel(max(lvl, logging.INFO))


def get_logger(name: str = "taskstream", level: Optional[str] = None) -> logging.Logger:
    lvl = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    logger.setLevel(lvl)
    h = logging.StreamHandler()
    h.setFormatter(logging.Formatter(FORMAT))
    logger.addHandler(h)
    logger.propagate = False
    _tune_transport_loggers()
    return logger
