"""
Logging setup for the Liar Game API (loguru)

Sinks:
    stdout      LOG_LEVEL, renkli veya LOG_JSON ile JSON
    app.log     INFO+, gece yarisi rotasyon, 30 gun
    error.log   ERROR+, 90 gun, her zaman diagnose

Her concern kendi bound logger'ini kullanir (auth, access, room, ratelimit ...);
`extra[name]` alani log satirinda modulun yerine gecer.
"""

import sys
import logging
from pathlib import Path

from loguru import logger as loguru_logger

from liar_game.config import settings


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[name]}:{function}:{line} | {message}"

# Kendi access log'u ve SQL echo'su olan kutuphaneler
NOISY_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "aiosqlite": logging.WARNING,
}


class InterceptHandler(logging.Handler):
    """Stdlib logging kayitlarini loguru'ya aktarir (uvicorn, sqlalchemy, error_handlers)."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # logging modulunun kendi frame'lerini atla
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        loguru_logger.bind(name=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _add_file_sink(path: Path, level: str, retention: str, diagnose: bool) -> None:
    loguru_logger.add(
        path,
        format=FILE_FORMAT,
        level=level,
        rotation="00:00",
        retention=retention,
        compression="zip",
        serialize=settings.LOG_JSON,
        backtrace=True,
        diagnose=diagnose,
        encoding="utf-8",
    )


def setup_logging() -> None:
    """Uygulama acilisinda (lifespan) bir kez cagrilir."""
    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    loguru_logger.remove()
    loguru_logger.configure(extra={"name": "liar_game"})

    loguru_logger.add(
        sys.stdout,
        format=CONSOLE_FORMAT,
        level=settings.LOG_LEVEL,
        colorize=not settings.LOG_JSON,
        serialize=settings.LOG_JSON,
        backtrace=True,
        diagnose=settings.DEBUG,
    )
    _add_file_sink(log_dir / "app.log", "INFO", "30 days", diagnose=settings.DEBUG)
    _add_file_sink(log_dir / "error.log", "ERROR", "90 days", diagnose=True)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name, level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(logging.DEBUG if settings.DEBUG else level)


def get_logger(name: str):
    """
    Kullanim:
        from liar_game.utils.logging_config import get_logger
        logger = get_logger("room")
    """
    return loguru_logger.bind(name=name)


fastapi_logger = get_logger("fastapi")
database_logger = get_logger("database")
auth_logger = get_logger("auth")
access_logger = get_logger("access")
room_logger = get_logger("room")
ratelimit_logger = get_logger("ratelimit")


__all__ = [
    "setup_logging",
    "get_logger",
    "loguru_logger",
    "fastapi_logger",
    "database_logger",
    "auth_logger",
    "access_logger",
    "room_logger",
    "ratelimit_logger",
]
