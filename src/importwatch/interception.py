"""Records dependency edges as tracked modules import other modules."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from importwatch.eligibility import is_trackable
from importwatch.logging import TRACE, get_logger

if TYPE_CHECKING:
    from importwatch.session import WatchSession

log = get_logger("interception")


class LoadInterceptor:
    """LoadListener that grows a session's graph.

    Called for every observed import, including imports served straight from
    ``sys.modules``: a module imported before its dependent became tracked
    still gets its edge.
    """

    def __init__(self, session: WatchSession) -> None:
        self._session = session

    def tracks(self, dependent_path: Path) -> bool:
        with self._session.lock:
            return self._session.graph.has(dependent_path)

    def on_load(self, requested_path: Path, dependent_path: Path) -> None:
        session = self._session
        session.raise_if_failed()
        if not is_trackable(requested_path, session.dependency_roots):
            return
        if requested_path == dependent_path:
            return

        with session.lock:
            graph = session.graph
            if not graph.has(dependent_path):
                return
            _, created = graph.ensure_node(requested_path)
            if created:
                session.watcher.watch_path(requested_path)
            node = graph.get(requested_path)
            if node is not None and dependent_path not in node.parents:
                log.log(TRACE, "%s depends on %s", dependent_path, requested_path)
            graph.record_edge(dependent_path, requested_path)
