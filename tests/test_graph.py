"""Tests for the dependency graph store."""

from __future__ import annotations

from pathlib import Path

import pytest

from importwatch.graph import DependencyGraph, Node


@pytest.fixture
def graph() -> DependencyGraph:
    return DependencyGraph()


@pytest.fixture
def paths(app_dir: Path) -> dict[str, Path]:
    return {key: app_dir / f"{key}.py" for key in ("a", "b", "c")}


class TestEnsureNode:
    def test_creates_empty_node(self, graph: DependencyGraph, paths: dict[str, Path]) -> None:
        node, created = graph.ensure_node(paths["a"])
        assert created
        assert node == Node(path=paths["a"])
        assert node.parents == set()
        assert node.is_root

    def test_idempotent(self, graph: DependencyGraph, paths: dict[str, Path]) -> None:
        first, _ = graph.ensure_node(paths["a"])
        second, created = graph.ensure_node(paths["a"])
        assert second is first
        assert not created
        assert len(graph) == 1


class TestRecordEdge:
    def test_noop_without_parent(self, graph: DependencyGraph, paths: dict[str, Path]) -> None:
        assert graph.record_edge(paths["a"], paths["b"]) is False
        assert len(graph) == 0

    def test_adds_child_and_parent(self, graph: DependencyGraph, paths: dict[str, Path]) -> None:
        graph.ensure_node(paths["a"])
        assert graph.record_edge(paths["a"], paths["b"]) is True
        child = graph.get(paths["b"])
        assert child is not None
        assert child.parents == {paths["a"]}
        assert not child.is_root

    def test_no_duplicate_parents(self, graph: DependencyGraph, paths: dict[str, Path]) -> None:
        graph.ensure_node(paths["a"])
        graph.record_edge(paths["a"], paths["b"])
        assert graph.record_edge(paths["a"], paths["b"]) is False
        node = graph.get(paths["b"])
        assert node is not None
        assert node.parents == {paths["a"]}

    def test_existing_child_gains_parent(
        self, graph: DependencyGraph, paths: dict[str, Path]
    ) -> None:
        graph.ensure_node(paths["a"])
        graph.ensure_node(paths["b"])
        graph.ensure_node(paths["c"])
        graph.record_edge(paths["a"], paths["c"])
        graph.record_edge(paths["b"], paths["c"])
        node = graph.get(paths["c"])
        assert node is not None
        assert node.parents == {paths["a"], paths["b"]}


class TestRemoveNode:
    def test_remove(self, graph: DependencyGraph, paths: dict[str, Path]) -> None:
        graph.ensure_node(paths["a"])
        removed = graph.remove_node(paths["a"])
        assert removed is not None
        assert removed.path == paths["a"]
        assert not graph.has(paths["a"])
        assert paths["a"] not in graph

    def test_remove_missing_is_noop(self, graph: DependencyGraph, paths: dict[str, Path]) -> None:
        assert graph.remove_node(paths["a"]) is None

    def test_clear_and_iteration(self, graph: DependencyGraph, paths: dict[str, Path]) -> None:
        for path in paths.values():
            graph.ensure_node(path)
        assert sorted(n.path for n in graph) == sorted(paths.values())
        assert sorted(graph.paths()) == sorted(paths.values())
        graph.clear()
        assert len(graph) == 0
