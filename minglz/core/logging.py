from __future__ import annotations

import sys

from loguru import logger

from minglz.core.config import settings


def configure_logging(level: str | None = None) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=(level or settings.LOG_LEVEL).upper(),
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function} - {message} | {extra}",
        backtrace=False,
        diagnose=False,
    )
