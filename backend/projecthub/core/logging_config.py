from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path

from loguru import logger

from projecthub.config import settings

SILENCED_LIBRARIES = ("passlib", "multipart")

_configured = False


class InterceptHandler(logging.Handler):
    """Forward stdlib logging records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level_name = logger.level(record.levelname).name
        except ValueError:
            level_name = record.levelno

        frame = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level_name, record.getMessage())


def configure_logging(level: str | None = None) -> None:
    """
    Configure loguru sinks and route stdlib logging (uvicorn, SQLAlchemy) into it.
    - level: optional override; otherwise settings.LOG_LEVEL, falling back to
      DEBUG in development and INFO elsewhere.
    """
    global _configured
    if _configured:
        return

    env = settings.ENV.lower()
    if level is None:
        level = settings.LOG_LEVEL or ("DEBUG" if env == "development" else "INFO")
    level = level.upper()

    logger.remove()

    if env == "production":
        logger.add(sys.stdout, level=level, serialize=True, enqueue=True, backtrace=False, diagnose=False)
    else:
        fmt = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )
        logger.add(sys.stdout, level=level, format=fmt, enqueue=True, backtrace=True, diagnose=True, colorize=True)

    log_file_path = None
    if settings.LOG_DIR:
        log_dir = Path(settings.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file_path = log_dir / f"{datetime.now().strftime('%Y-%m-%d_%H-%M-%S')}.log"
        logger.add(
            log_file_path,
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}",
            enqueue=True,
            encoding="utf-8",
        )

    stdlib_level = logging.getLevelName(level)
    logging.root.handlers = [InterceptHandler()]
    logging.root.setLevel(stdlib_level)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = [InterceptHandler()]
        uvicorn_logger.setLevel(stdlib_level)
        uvicorn_logger.propagate = False

    for lib_name in SILENCED_LIBRARIES:
        noisy_logger = logging.getLogger(lib_name)
        noisy_logger.setLevel(logging.ERROR)

    _configured = True
    logger.info(f"Logging configured: level={level}, environment={env}, log_file={log_file_path}")
