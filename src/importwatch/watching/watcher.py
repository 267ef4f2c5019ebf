"""Polling file watcher used as the native watch service.

Polls the mtime and size of every watched file, the same approach the config
layer takes, so no OS-specific notification API is needed. Each detected
change is delivered to a single callback, one event at a time.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from importwatch.errors import InconsistentState
from importwatch.logging import VERBOSE, get_logger

log = get_logger("watching")

DEFAULT_POLL_INTERVAL = 1.0
MIN_POLL_INTERVAL = 0.1


@dataclass
class WatchedFile:
    """Tracks a watched file's last seen state."""

    path: Path
    mtime: float | None = None
    size: int | None = None
    exists: bool = True


@dataclass
class FileChangeEvent:
    """Represents a detected file change."""

    path: Path
    change_type: str  # "modified", "created", "deleted"
    old_mtime: float | None
    new_mtime: float | None
    timestamp: float = field(default_factory=time.time)


ChangeCallback = Callable[[FileChangeEvent], None]


class NativeWatcher(Protocol):
    """What a WatchSession needs from a file watching service.

    ``failure`` holds the fatal error that stopped delivery, if any.
    """

    failure: BaseException | None

    def watch_path(self, path: Path) -> None: ...

    def unwatch_path(self, path: Path) -> None: ...

    def close(self) -> None: ...


class PollingWatcher:
    """Watches individual files for changes using polling.

    Example:
        watcher = PollingWatcher(on_change, poll_interval=0.5)
        watcher.watch_path(Path("/project/app/models.py"))
        watcher.start()      # daemon thread
        ...
        watcher.close()

    Hosts that run an asyncio loop can ``await watcher.run()`` instead of
    calling ``start()``. Tests call ``poll()`` directly.
    """

    def __init__(
        self,
        callback: ChangeCallback,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self._callback = callback
        self._poll_interval = max(MIN_POLL_INTERVAL, poll_interval)
        self._watched: dict[Path, WatchedFile] = {}
        self._guard = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._running = False
        self._closed = False
        self.failure: BaseException | None = None

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    @poll_interval.setter
    def poll_interval(self, value: float) -> None:
        self._poll_interval = max(MIN_POLL_INTERVAL, value)

    @property
    def watched_count(self) -> int:
        return len(self._watched)

    @property
    def closed(self) -> bool:
        return self._closed

    def is_watching(self, path: Path) -> bool:
        return path in self._watched

    def watch_path(self, path: Path) -> None:
        """Start watching ``path``. A missing file is watched until it appears."""
        with self._guard:
            if path in self._watched:
                return
            try:
                stat = path.stat()
                self._watched[path] = WatchedFile(
                    path=path, mtime=stat.st_mtime, size=stat.st_size, exists=True
                )
            except FileNotFoundError:
                self._watched[path] = WatchedFile(path=path, mtime=None, size=None, exists=False)
        log.log(VERBOSE, "Watching %s", path)

    def unwatch_path(self, path: Path) -> None:
        with self._guard:
            removed = self._watched.pop(path, None)
        if removed is not None:
            log.log(VERBOSE, "Unwatching %s", path)

    def check_changes(self) -> list[FileChangeEvent]:
        """Stat every watched file and return the changes since the last check."""
        with self._guard:
            snapshot = list(self._watched.items())

        events: list[FileChangeEvent] = []
        for path, watched in snapshot:
            event = self._check_file(path, watched)
            if event:
                events.append(event)
        return events

    def _check_file(self, path: Path, watched: WatchedFile) -> FileChangeEvent | None:
        try:
            stat = path.stat()
        except FileNotFoundError:
            if not watched.exists:
                return None
            old_mtime = watched.mtime
            watched.exists = False
            watched.mtime = None
            watched.size = None
            return FileChangeEvent(
                path=path, change_type="deleted", old_mtime=old_mtime, new_mtime=None
            )
        except OSError as e:
            log.warning("Error checking %s: %s", path, e)
            return None

        if not watched.exists:
            watched.exists = True
            watched.mtime = stat.st_mtime
            watched.size = stat.st_size
            return FileChangeEvent(
                path=path, change_type="created", old_mtime=None, new_mtime=stat.st_mtime
            )

        if stat.st_mtime != watched.mtime or stat.st_size != watched.size:
            old_mtime = watched.mtime
            watched.mtime = stat.st_mtime
            watched.size = stat.st_size
            return FileChangeEvent(
                path=path, change_type="modified", old_mtime=old_mtime, new_mtime=stat.st_mtime
            )

        return None

    def poll(self) -> list[FileChangeEvent]:
        """Run one polling cycle and deliver the changes to the callback.

        A file unwatched by an earlier callback in the same cycle is skipped.
        InconsistentState from the callback propagates; any other error is
        logged and polling continues.
        """
        delivered: list[FileChangeEvent] = []
        for event in self.check_changes():
            if event.path not in self._watched:
                continue
            try:
                self._callback(event)
            except InconsistentState:
                raise
            except Exception as e:
                log.error("Error in file change callback for %s: %s", event.path, e)
            delivered.append(event)
        return delivered

    def start(self) -> None:
        """Poll on a daemon thread until ``close()`` is called."""
        if self._running:
            log.warning("PollingWatcher already running")
            return
        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._thread_main, name="importwatch-poller", daemon=True
        )
        self._thread.start()
        log.info("PollingWatcher started (interval: %.1fs)", self._poll_interval)

    def _thread_main(self) -> None:
        try:
            while not self._stop_event.wait(self._poll_interval):
                self.poll()
        except InconsistentState as e:
            self.failure = e
            log.critical("Watcher and dependency graph are out of sync: %s", e)
            raise
        finally:
            self._running = False

    async def run(self) -> None:
        """Poll from an asyncio task until ``close()`` is called or cancelled."""
        if self._running:
            log.warning("PollingWatcher already running")
            return
        self._running = True
        self._stop_event.clear()
        log.info("PollingWatcher started (interval: %.1fs)", self._poll_interval)
        try:
            while not self._stop_event.is_set():
                try:
                    self.poll()
                except InconsistentState as e:
                    self.failure = e
                    log.critical("Watcher and dependency graph are out of sync: %s", e)
                    raise
                await asyncio.sleep(self._poll_interval)
        except asyncio.CancelledError:
            log.info("PollingWatcher cancelled")
        finally:
            self._running = False

    def is_running(self) -> bool:
        return self._running

    def close(self) -> None:
        """Stop polling and forget every watched file."""
        self._stop_event.set()
        thread = self._thread
        self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=max(1.0, self._poll_interval * 2))
        with self._guard:
            self._watched.clear()
        self._closed = True
        log.info("PollingWatcher stopped")
