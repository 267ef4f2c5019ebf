"""File watching for importwatch.

Provides the polling watcher that reports changes to module source files
tracked by a WatchSession.
"""

from importwatch.watching.watcher import (
    DEFAULT_POLL_INTERVAL,
    ChangeCallback,
    FileChangeEvent,
    NativeWatcher,
    PollingWatcher,
    WatchedFile,
)

__all__ = [
    "DEFAULT_POLL_INTERVAL",
    "ChangeCallback",
    "FileChangeEvent",
    "NativeWatcher",
    "PollingWatcher",
    "WatchedFile",
]
