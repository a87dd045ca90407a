"""Shared utilities."""

from .logging import setup_logging, get_logger, LoggerMixin, log_async_execution_time, sync_log_context

__all__ = [
    "setup_logging",
    "get_logger",
    "LoggerMixin",
    "log_async_execution_time",
    "sync_log_context"
]
