"""
Logging setup for Signal Watcher processes (API server and scheduler).

Sinks:
    stderr                          coloured, LOG_LEVEL and above
    LOG_DIR/<app>_<date>.log        everything from INFO, rotated daily
    LOG_DIR/<app>_warnings.log      WARNING and above: skipped sources,
                                    unparseable output, failed publishes

Libraries that log through the standard `logging` module (APScheduler,
uvicorn, SQLAlchemy) are routed into loguru so every line ends up in the
same sinks.
"""
import logging
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}"

# Standard-library loggers forwarded into loguru
STDLIB_LOGGERS = ("apscheduler", "uvicorn", "uvicorn.error", "uvicorn.access", "sqlalchemy.engine")

_configured = False


class InterceptHandler(logging.Handler):
    """Forward standard-library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _intercept_stdlib(level: str) -> None:
    handler = InterceptHandler()
    for name in STDLIB_LOGGERS:
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = [handler]
        stdlib_logger.propagate = False
    # SQL echo is noise below WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(level)


def setup_logging(log_dir: Optional[Path] = None, log_level: str = "INFO", app_name: str = "app") -> None:
    """
    Configure loguru sinks once per process.

    Args:
        log_dir: Directory for log files. None disables file logging.
        log_level: Minimum console level (DEBUG, INFO, WARNING, ERROR)
        app_name: Prefix for log file names ("api", "scheduler")
    """
    global _configured
    if _configured:
        return

    logger.remove()
    logger.add(sys.stderr, level=log_level, format=CONSOLE_FORMAT)

    if log_dir:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_dir / f"{app_name}_{{time:YYYY-MM-DD}}.log",
            level="INFO",
            format=FILE_FORMAT,
            rotation="00:00",
            retention="30 days",
            compression="gz",
            encoding="utf-8",
        )
        logger.add(
            log_dir / f"{app_name}_warnings.log",
            level="WARNING",
            format=FILE_FORMAT,
            rotation="10 MB",
            retention=5,
            encoding="utf-8",
        )

    _intercept_stdlib(log_level)
    _configured = True
    logger.info(f"[Logging] {app_name} logging at {log_level}" + (f", files in {log_dir}" if log_dir else ""))


def init_logging(app_name: str = "app") -> None:
    """Configure logging from settings. Call once at process start."""
    from config import settings, ensure_directories

    ensure_directories()
    setup_logging(log_dir=settings.LOG_DIR, log_level=settings.LOG_LEVEL, app_name=app_name)


__all__ = ["logger", "setup_logging", "init_logging", "InterceptHandler"]
