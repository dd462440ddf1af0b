"""
Loguru setup for the approval assistant.

Sinks:
- colored console output
- ``app.log`` (everything) and ``errors.log`` (ERROR and above), rotated
- ``requests.log`` for the HTTP middleware, ``performance.log`` for timings
- ``conversations.log`` for records bound to a conversation id

Modules log through ``app_logger``; handlers that work on one conversation
use ``conversation_logger`` so their lines land in the conversation sink too.
"""

import sys
from pathlib import Path

from fastapi import Request
from loguru import logger

from app.config.settings import settings


FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
TAGGED_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"


class LoguruConfig:
    """Installs the application's Loguru sinks."""

    def __init__(self, logs_dir: str = "logs"):
        self.logs_dir = Path(logs_dir)
        self.logs_dir.mkdir(parents=True, exist_ok=True)

    def _file(self, name: str, level: str, rotation: str, retention: str, **kwargs) -> None:
        logger.add(
            self.logs_dir / name,
            level=level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            encoding="utf-8",
            **kwargs,
        )

    def setup_logger(self, log_level: str = "INFO") -> None:
        """Configure Loguru logger for the application."""
        logger.remove()

        logger.add(
            sys.stdout,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
            level=log_level,
            colorize=True,
            backtrace=True,
            diagnose=False,
        )

        self._file("app.log", "DEBUG", "10 MB", "7 days", format=FILE_FORMAT, backtrace=True, diagnose=False)
        self._file("errors.log", "ERROR", "5 MB", "30 days", format=FILE_FORMAT, backtrace=True, diagnose=False)
        self._file(
            "requests.log", "INFO", "20 MB", "14 days",
            format=TAGGED_FORMAT,
            filter=lambda record: "REQUEST" in record["message"],
        )
        self._file(
            "performance.log", "INFO", "10 MB", "7 days",
            format=TAGGED_FORMAT,
            filter=lambda record: "PERFORMANCE" in record["message"],
        )
        self._file(
            "conversations.log", "DEBUG", "20 MB", "14 days",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[conversation_id]} | {message}",
            filter=lambda record: "conversation_id" in record["extra"],
        )


def conversation_logger(conversation_id: str):
    """Logger bound to one conversation."""
    return logger.bind(conversation_id=conversation_id)


def log_request_start(request: Request) -> None:
    """Log the start of a request using Loguru."""
    logger.info(
        "REQUEST START: {method} {path}",
        method=request.method,
        path=request.url.path,
        client_ip=request.client.host if request.client else None,
    )


def log_request_end(request: Request, status_code: int, process_time: float) -> None:
    """Log the completion of a request using Loguru."""
    logger.info(
        "REQUEST END: {method} {path} - {status_code} ({process_time:.4f}s)",
        method=request.method,
        path=request.url.path,
        status_code=status_code,
        process_time=round(process_time, 4),
    )


def log_request_error(request: Request, error: Exception, process_time: float) -> None:
    """Log a request error using Loguru."""
    logger.error(
        "REQUEST ERROR: {method} {path} - {error} ({process_time:.4f}s)",
        method=request.method,
        path=request.url.path,
        error=str(error),
        process_time=round(process_time, 4),
        error_type=type(error).__name__,
    )


def log_performance(operation: str, duration: float, **kwargs) -> None:
    """Log an operation timing to the performance sink."""
    logger.info(
        "PERFORMANCE: {operation} completed in {duration:.4f}s",
        operation=operation,
        duration=duration,
        **kwargs,
    )


loguru_config = LoguruConfig(settings.LOGS_DIR)
loguru_config.setup_logger(settings.LOG_LEVEL)

app_logger = logger
