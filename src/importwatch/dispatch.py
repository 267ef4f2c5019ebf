"""Cascading invalidation for one file change.

A changed module invalidates every module above it in the reverse-dependency
graph, because those modules hold references to the old objects. Ancestors are
only removed from ``sys.modules``, never re-imported here: re-executing a
module the caller has not asked for again could trigger its side effects.

Roots (nodes with no recorded dependents) are re-armed so they stay watched
after eviction; the next import of a root repopulates its subtree.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from importwatch.errors import InconsistentState
from importwatch.logging import get_logger

if TYPE_CHECKING:
    from importwatch.session import WatchSession

log = get_logger("dispatch")


def cascade_invalidate(session: WatchSession, path: Path) -> list[Path]:
    """Evict ``path`` and all of its tracked ancestors.

    Must be called with ``session.lock`` held.

    Args:
        session: The session owning the graph.
        path: The file the watcher reported as changed.

    Returns:
        Evicted paths in eviction order; each path appears once.

    Raises:
        InconsistentState: If ``path`` is not in the graph.
    """
    graph = session.graph
    if not graph.has(path):
        raise InconsistentState(str(path))

    evicted: list[Path] = []
    visited: set[Path] = set()
    stack = [path]

    while stack:
        current = stack.pop()
        if current in visited:
            continue
        visited.add(current)

        node = graph.remove_node(current)
        if node is None:
            # Already evicted through another branch of a diamond
            continue

        log.info("Invalidating %s", current)
        session.host.evict(current)
        session.watcher.unwatch_path(current)
        evicted.append(current)

        if not node.parents:
            log.debug("Root node %s, re-arming", current)
            session.start(current)
            continue

        for parent in sorted(node.parents, reverse=True):
            if parent not in visited and graph.has(parent):
                stack.append(parent)

    return evicted
