"""
Error taxonomy for the watch pipeline.

Every error raised inside a cycle derives from WatcherError so the
scheduler can reduce it to a log line and keep going.
"""


class WatcherError(Exception):
    """Base class for all pipeline errors."""


class FetchError(WatcherError):
    """A single source could not be fetched."""

    def __init__(self, identity: str, message: str):
        super().__init__(f"{identity}: {message}")
        self.identity = identity


class InferenceError(WatcherError):
    """The generative text call failed or timed out."""


class ParseError(WatcherError):
    """Inference output could not be decoded into candidate signals."""


class MergeError(WatcherError):
    """An existing store entry does not match its record schema."""


class CorruptEntryError(MergeError):
    """A key store value is not valid JSON."""

    def __init__(self, key: str):
        super().__init__(f"Corrupt entry for key '{key}'")
        self.key = key


class PublishError(WatcherError):
    """Broadcasting the report to peer replicas failed."""


class SchedulerError(WatcherError):
    """Catch-all for failures escaping a cycle stage."""


class InvalidCursorError(WatcherError, ValueError):
    """A pagination cursor could not be decoded."""


class ThrottledError(WatcherError):
    """A user action was refused by the daily limit."""
