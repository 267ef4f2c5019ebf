"""Watch sessions: the public start/stop entry points.

A WatchSession owns the dependency graph, the file watcher and the lock that
serializes every graph mutation. The module-level ``start()``/``stop()`` keep
at most one active session per process.

Example:
    import importwatch

    importwatch.start("/srv/app/handlers.py")
    import handlers           # tracked, along with everything it imports
    ...                       # edit handlers.py or any module it imports
    import handlers           # fresh code
    importwatch.stop()
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from pathlib import Path

from importwatch.config import Config, get_config
from importwatch.dispatch import cascade_invalidate
from importwatch.eligibility import default_dependency_roots, is_trackable
from importwatch.errors import (
    ImportWatchError,
    InconsistentState,
    Ineligible,
    InvalidPath,
    SessionConflict,
)
from importwatch.graph import DependencyGraph, Node
from importwatch.host import ModuleHost, default_host, normalize_path
from importwatch.interception import LoadInterceptor
from importwatch.logging import get_logger, setup_logging
from importwatch.watching import (
    DEFAULT_POLL_INTERVAL,
    ChangeCallback,
    FileChangeEvent,
    NativeWatcher,
    PollingWatcher,
)

log = get_logger("session")

WatcherFactory = Callable[[ChangeCallback], NativeWatcher]


class WatchSession:
    """Graph, watcher and import listener for one watch session.

    Args:
        host: Module system adapter. Defaults to ``sys.modules``.
        watcher_factory: Builds the watcher from the change callback.
            Defaults to a PollingWatcher that is not yet polling.
        dependency_roots: Directories that are never watched.
        poll_interval: Used by the default watcher factory.
    """

    def __init__(
        self,
        *,
        host: ModuleHost | None = None,
        watcher_factory: WatcherFactory | None = None,
        dependency_roots: Iterable[Path] | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.lock = threading.RLock()
        self.graph = DependencyGraph()
        self.host: ModuleHost = host or default_host()
        self.dependency_roots: tuple[Path, ...] = (
            tuple(dependency_roots)
            if dependency_roots is not None
            else default_dependency_roots()
        )
        if watcher_factory is None:
            watcher_factory = lambda callback: PollingWatcher(callback, poll_interval)  # noqa: E731
        self.watcher: NativeWatcher = watcher_factory(self._on_event)
        self.interceptor = LoadInterceptor(self)
        self.active = True
        self.host.install_hook(self.interceptor)

    @classmethod
    def from_config(cls, config: Config, *, background: bool = True) -> WatchSession:
        """Build a session with a PollingWatcher configured from ``config``.

        Args:
            config: Loaded configuration.
            background: Start polling on a daemon thread. Pass False and
                ``await session.watcher.run()`` inside an asyncio loop.
        """
        watch = config.watch
        roots = default_dependency_roots(
            watch.project_root,
            include_stdlib=watch.include_stdlib,
            extra=watch.dependency_dirs,
        )
        session = cls(dependency_roots=roots, poll_interval=watch.poll_interval)
        if background and isinstance(session.watcher, PollingWatcher):
            session.watcher.start()
        return session

    def start(self, path: str | Path | None = None) -> Node | None:
        """Track ``path``, or every loaded application module if omitted.

        Returns:
            The node for ``path``; None when watching everything.

        Raises:
            Ineligible: ``path`` names a built-in or a dependency file.
            InvalidPath: ``path`` is not absolute.
            SessionConflict: No path given but the graph is not empty.
            InconsistentState: The watcher stopped on a fatal error.
        """
        self.raise_if_failed()
        if not self.active:
            raise ImportWatchError("This watch session has been stopped")

        if path is not None:
            return self._track(path)

        with self.lock:
            if len(self.graph):
                raise SessionConflict([str(p) for p in self.graph.paths()])

            log.info("Watching everything possible")
            for cached in self.host.cached_paths():
                if is_trackable(cached, self.dependency_roots):
                    self._track(cached)
        return None

    def _track(self, path: str | Path) -> Node:
        if not is_trackable(path, self.dependency_roots):
            raise Ineligible(str(path))
        if not Path(path).is_absolute():
            raise InvalidPath(str(path))

        resolved = normalize_path(path)
        if not is_trackable(resolved, self.dependency_roots):
            raise Ineligible(str(path))

        with self.lock:
            node, created = self.graph.ensure_node(resolved)
            if created:
                log.debug("Watching %s", resolved)
                self.watcher.watch_path(resolved)
            return node

    def on_change(self, path: Path) -> list[Path]:
        """Run the cascade for one changed file. See ``cascade_invalidate``."""
        self.raise_if_failed()
        with self.lock:
            return cascade_invalidate(self, path)

    def _on_event(self, event: FileChangeEvent) -> None:
        with self.lock:
            if not self.active:
                return
            log.debug("A change (%s) was detected on %s", event.change_type, event.path)
            self.on_change(event.path)

    def raise_if_failed(self) -> None:
        """Re-raise the watcher's fatal error, shutting the session down first.

        Once the watcher has died no change is ever delivered again, so every
        cached module in the graph may be stale from then on.
        """
        failure = self.watcher.failure
        if failure is None:
            return
        if self.active:
            log.critical("Watcher failed, stopping the session: %s", failure)
            self.stop()
        raise failure

    def stop(self) -> None:
        """Unwatch every node, close the watcher and detach from imports."""
        with self.lock:
            if not self.active:
                log.debug("stop() called on a session that is already stopped")
                return
            paths = self.graph.paths()
            log.debug("Stopping; graph has %d node(s)", len(paths))
            for path in paths:
                self.watcher.unwatch_path(path)
                self.graph.remove_node(path)
            self.active = False
            self.host.remove_hook(self.interceptor)
        # The poller thread may be waiting on the lock
        self.watcher.close()

    def nodes(self) -> list[Node]:
        with self.lock:
            return list(self.graph)

    def __contains__(self, path: object) -> bool:
        with self.lock:
            return path in self.graph

    def __enter__(self) -> WatchSession:
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()


_active_session: WatchSession | None = None
_state_lock = threading.Lock()


def active_session() -> WatchSession | None:
    return _active_session


def start(path: str | Path | None = None, *, config: Config | None = None) -> Node | None:
    """Start or extend the process-wide watch session.

    The first call creates the session (polling in the background); later
    calls add paths to it. A failed first call leaves no session behind.

    Args:
        path: Absolute path of a module file. Omit to watch every loaded
            application module, which is only allowed while nothing is
            watched yet.
        config: Overrides the global config for a new session.

    Returns:
        The node for ``path``, or None when watching everything.
    """
    global _active_session

    with _state_lock:
        session = _active_session
        if session is not None:
            try:
                return session.start(path)
            except InconsistentState:
                _active_session = None
                raise

        config = config or get_config()
        if config.logging.configured:
            setup_logging(config.logging)

        session = WatchSession.from_config(config)
        try:
            node = session.start(path)
        except ImportWatchError:
            session.stop()
            raise
        _active_session = session
        return node


def stop() -> None:
    """Stop the process-wide session. Safe to call when none is active."""
    global _active_session

    with _state_lock:
        session = _active_session
        _active_session = None

    if session is None:
        log.debug("stop() called without an active session")
        return
    session.stop()


watch = start
stop_watching = stop
