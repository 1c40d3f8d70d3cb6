"""
Utilities module for Signal Watcher.
"""
from .logger import logger, init_logging, setup_logging
from .retry import RetryConfig, with_retry
from .errors import (
    WatcherError,
    FetchError,
    InferenceError,
    ParseError,
    MergeError,
    CorruptEntryError,
    PublishError,
    SchedulerError,
    InvalidCursorError,
    ThrottledError,
)

__all__ = [
    "logger",
    "init_logging",
    "setup_logging",
    "RetryConfig",
    "with_retry",
    "WatcherError",
    "FetchError",
    "InferenceError",
    "ParseError",
    "MergeError",
    "CorruptEntryError",
    "PublishError",
    "SchedulerError",
    "InvalidCursorError",
    "ThrottledError",
]
