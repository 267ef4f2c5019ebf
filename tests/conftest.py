"""Root pytest configuration for all tests."""

from __future__ import annotations

import sys
import uuid
from collections.abc import Iterator
from pathlib import Path

import pytest

import importwatch.session as session_module
from importwatch.config import reset_config
from importwatch.session import WatchSession
from tests.utils import FakeHost, FakeWatcher, ModuleSet

pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(autouse=True)
def _isolate_global_state(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Keep config files and the process-wide session out of every test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.delenv("IMPORTWATCH_LOG", raising=False)
    monkeypatch.delenv("IMPORTWATCH_POLL_INTERVAL", raising=False)
    reset_config()
    yield
    session_module.stop()
    reset_config()


@pytest.fixture
def app_dir(tmp_path: Path) -> Path:
    """Absolute application directory outside every dependency root."""
    path = tmp_path.resolve() / "app"
    path.mkdir()
    return path


@pytest.fixture
def deps_dir(tmp_path: Path) -> Path:
    path = tmp_path.resolve() / "deps"
    path.mkdir()
    return path


@pytest.fixture
def fake_host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def session(fake_host: FakeHost, deps_dir: Path) -> Iterator[WatchSession]:
    """A session wired to a FakeHost and a FakeWatcher."""
    s = WatchSession(
        host=fake_host,
        watcher_factory=FakeWatcher,
        dependency_roots=(deps_dir,),
    )
    yield s
    s.stop()


@pytest.fixture
def module_set(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[ModuleSet]:
    """Importable modules with unique names; removed from sys.modules afterwards."""
    directory = tmp_path.resolve() / "modules"
    directory.mkdir()
    suffix = uuid.uuid4().hex[:8]
    names = {key: f"iw_{key}_{suffix}" for key in ("a", "b", "c")}
    modules = ModuleSet(directory=directory, names=names)

    modules.write("c", 'VALUE = "one"\n')
    modules.write("b", f"from {names['c']} import VALUE\n")
    modules.write("a", f"import {names['b']}\n\nVALUE = {names['b']}.VALUE\n")

    # Stale bytecode could mask a rewrite that keeps the same size and second
    monkeypatch.setattr(sys, "dont_write_bytecode", True)
    monkeypatch.syspath_prepend(str(directory))
    yield modules
    for name in names.values():
        sys.modules.pop(name, None)
