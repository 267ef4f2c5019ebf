"""Shared test doubles for importwatch tests."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from importwatch.errors import ResolutionError
from importwatch.host import LoadListener
from importwatch.watching import ChangeCallback, FileChangeEvent


class FakeWatcher:
    """In-memory NativeWatcher that records every call."""

    def __init__(self, callback: ChangeCallback) -> None:
        self.callback = callback
        self.watched: set[Path] = set()
        self.watch_calls: list[Path] = []
        self.unwatch_calls: list[Path] = []
        self.closed = False
        self.failure: BaseException | None = None

    def watch_path(self, path: Path) -> None:
        self.watch_calls.append(path)
        self.watched.add(path)

    def unwatch_path(self, path: Path) -> None:
        self.unwatch_calls.append(path)
        self.watched.discard(path)

    def close(self) -> None:
        self.closed = True

    def emit(self, path: Path, change_type: str = "modified") -> None:
        """Deliver a change event as the real watcher would."""
        self.callback(
            FileChangeEvent(path=path, change_type=change_type, old_mtime=None, new_mtime=None)
        )


class FakeHost:
    """ModuleHost with a set standing in for sys.modules."""

    def __init__(self, cached: tuple[Path, ...] | list[Path] = ()) -> None:
        self.cache: set[Path] = set(cached)
        self.evicted: list[Path] = []
        self.listener: LoadListener | None = None
        self.install_calls = 0

    def resolve(self, name: str, package: str | None = None) -> Path:
        raise ResolutionError(name)

    def is_cached(self, path: Path) -> bool:
        return path in self.cache

    def evict(self, path: Path) -> list[str]:
        self.evicted.append(path)
        if path in self.cache:
            self.cache.discard(path)
            return [path.stem]
        return []

    def cached_paths(self) -> list[Path]:
        return sorted(self.cache)

    def install_hook(self, listener: LoadListener) -> None:
        self.install_calls += 1
        self.listener = listener

    def remove_hook(self, listener: LoadListener) -> None:
        if self.listener is listener:
            self.listener = None

    def load(self, requested: Path, dependent: Path) -> None:
        """Simulate ``dependent`` importing ``requested``."""
        if self.listener is not None and self.listener.tracks(dependent):
            self.listener.on_load(requested, dependent)
        self.cache.add(requested)


@dataclass
class ModuleSet:
    """Three real modules, a imports b imports c, on sys.path."""

    directory: Path
    names: dict[str, str]

    def path(self, key: str) -> Path:
        return self.directory / f"{self.names[key]}.py"

    def write(self, key: str, source: str) -> None:
        self.path(key).write_text(source, encoding="utf-8")
