"""Logging configuration and utilities.

All snapsync components log through structlog bound loggers that render
into the standard library logging tree. Human-oriented output goes to
stderr so command output on stdout stays pipeable.
"""

import functools
import logging
import logging.handlers
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

import structlog
import colorlog
from structlog.typing import Processor


# Marks handlers installed by setup_logging so a second call replaces them.
_HANDLER_MARK = "_snapsync_handler"

# Chatty third-party loggers, capped at WARNING unless running at DEBUG.
_NOISY_LOGGERS = ("aiohttp.access", "sqlalchemy.engine", "asyncio")

LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name}")
    return level


def _shared_processors() -> List[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None
) -> None:
    """Configure structlog and the root logger.

    Arguments fall back to the ``SNAPSYNC_LOG_*`` settings. Calling this
    again replaces the handlers installed by the previous call.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR
        log_format: ``json`` for machine-readable lines, anything else for console rendering
        log_file: Optional path of a rotating log file
    """
    from ..config.settings import get_settings

    settings = get_settings()

    level = _level(log_level or settings.logging.level)
    format_type = log_format or settings.logging.format
    file_path = log_file or settings.logging.file_path

    processors = _shared_processors()
    if format_type == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, _HANDLER_MARK, False)]:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)

    root.addHandler(setup_console_logging(level))
    if file_path:
        root.addHandler(setup_file_logging(file_path, level))

    if level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))


def setup_file_logging(file_path: str, level: int) -> logging.Handler:
    """Build a rotating file handler, 5MB per file with 3 backups."""
    log_file = Path(file_path)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8"
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    setattr(file_handler, _HANDLER_MARK, True)
    return file_handler


def setup_console_logging(level: int) -> logging.Handler:
    """Build a colored stderr handler."""
    console_handler = colorlog.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(colorlog.ColoredFormatter(
        "%(log_color)s%(levelname)-8s%(reset)s %(name)s: %(message)s",
        reset=True,
        log_colors=LOG_COLORS
    ))
    setattr(console_handler, _HANDLER_MARK, True)
    return console_handler


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class LoggerMixin:
    """Mixin class to add logging capabilities to any class."""

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        """Get logger instance for this class."""
        return get_logger(self.__class__.__name__)


@contextmanager
def sync_log_context(mountpoint: str, direction: str) -> Iterator[None]:
    """Attach ``mountpoint`` and ``direction`` to every log line emitted inside the block.

    Uses context variables, so concurrent syncs on other tasks keep their
    own values.
    """
    with structlog.contextvars.bound_contextvars(sync_mountpoint=mountpoint, sync_direction=direction):
        yield


def log_async_execution_time(func):
    """Log how long a coroutine function took, and its failure if it raised."""
    logger = get_logger(func.__module__)

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        start_time = time.perf_counter()

        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            logger.error(
                "Operation failed",
                operation=func.__qualname__,
                execution_time=f"{time.perf_counter() - start_time:.4f}s",
                error_type=type(e).__name__,
                error=str(e)
            )
            raise

        logger.debug(
            "Operation completed",
            operation=func.__qualname__,
            execution_time=f"{time.perf_counter() - start_time:.4f}s"
        )
        return result

    return wrapper
