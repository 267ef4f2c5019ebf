"""Reverse-dependency graph of watched module files.

Each node records the set of modules that imported it. Edges only ever point
from an already-tracked parent to a child, so the graph covers exactly the
subtree reachable from explicitly watched roots.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class Node:
    """One watched module file."""

    path: Path
    parents: set[Path] = field(default_factory=set)

    @property
    def is_root(self) -> bool:
        return not self.parents


class DependencyGraph:
    """Mapping of resolved file path to Node.

    Not thread-safe on its own; the owning WatchSession serializes access.
    """

    def __init__(self) -> None:
        self._nodes: dict[Path, Node] = {}

    def ensure_node(self, path: Path) -> tuple[Node, bool]:
        """Return the node for ``path``, creating it if needed.

        Returns:
            (node, created) where ``created`` is True for a new node.
        """
        node = self._nodes.get(path)
        if node is not None:
            return node, False
        node = Node(path=path)
        self._nodes[path] = node
        return node, True

    def record_edge(self, parent_path: Path, child_path: Path) -> bool:
        """Record that ``parent_path`` depends on ``child_path``.

        Does nothing unless the parent is already tracked.

        Returns:
            True if the child node was created by this call.
        """
        if parent_path not in self._nodes:
            return False
        child, created = self.ensure_node(child_path)
        child.parents.add(parent_path)
        return created

    def remove_node(self, path: Path) -> Node | None:
        return self._nodes.pop(path, None)

    def has(self, path: Path) -> bool:
        return path in self._nodes

    def get(self, path: Path) -> Node | None:
        return self._nodes.get(path)

    def paths(self) -> list[Path]:
        return list(self._nodes)

    def clear(self) -> None:
        self._nodes.clear()

    def __contains__(self, path: object) -> bool:
        return path in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(list(self._nodes.values()))
