"""Logging helpers."""

from __future__ import annotations

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: int | str = logging.INFO, log_file: Optional[str] = None) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    # the SDK clients log every HTTP exchange at INFO
    for noisy in ("httpx", "openai", "urllib3"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))
