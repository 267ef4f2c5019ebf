"""End-to-end reloads with real modules, sys.modules and the polling watcher."""

from __future__ import annotations

import importlib
import sys
import time
from collections.abc import Iterator
from pathlib import Path

import pytest

import importwatch
import importwatch.host
from importwatch.config import Config
from importwatch.eligibility import PACKAGE_DIR
from importwatch.session import WatchSession
from importwatch.watching import PollingWatcher
from tests.utils import ModuleSet


@pytest.fixture
def live_session() -> Iterator[WatchSession]:
    """Session on the real import system; the test drives polling."""
    s = WatchSession()
    yield s
    s.stop()


def _poll(session: WatchSession) -> None:
    assert isinstance(session.watcher, PollingWatcher)
    session.watcher.poll()


class TestReload:
    def test_watch_one_file(self, live_session: WatchSession, module_set: ModuleSet) -> None:
        name = module_set.names["c"]
        live_session.start(module_set.path("c"))
        assert importlib.import_module(name).VALUE == "one"

        module_set.write("c", 'VALUE = "two, longer"\n')
        _poll(live_session)

        assert name not in sys.modules
        assert importlib.import_module(name).VALUE == "two, longer"

    def test_dependency_change_reloads_dependents(
        self, live_session: WatchSession, module_set: ModuleSet
    ) -> None:
        a, b, c = (module_set.path(k) for k in "abc")
        live_session.start(a)
        assert importlib.import_module(module_set.names["a"]).VALUE == "one"

        node_c = live_session.graph.get(c)
        node_b = live_session.graph.get(b)
        assert node_b is not None and node_b.parents == {a}
        assert node_c is not None and node_c.parents == {b}

        module_set.write("c", 'VALUE = "changed!"\n')
        _poll(live_session)

        for key in "abc":
            assert module_set.names[key] not in sys.modules
        assert live_session.graph.paths() == [a]

        assert importlib.import_module(module_set.names["a"]).VALUE == "changed!"
        assert live_session.graph.has(c)

    def test_untracked_importer_is_left_alone(
        self, live_session: WatchSession, module_set: ModuleSet
    ) -> None:
        """Watching b does not make a, which imports b, part of the graph."""
        live_session.start(module_set.path("b"))
        importlib.import_module(module_set.names["a"])

        assert not live_session.graph.has(module_set.path("a"))
        assert live_session.graph.has(module_set.path("c"))

        module_set.write("c", 'VALUE = "changed!"\n')
        _poll(live_session)

        assert module_set.names["a"] in sys.modules
        assert module_set.names["b"] not in sys.modules

    def test_deleted_root_waits_for_recreation(
        self, live_session: WatchSession, module_set: ModuleSet
    ) -> None:
        name = module_set.names["c"]
        path = module_set.path("c")
        live_session.start(path)
        importlib.import_module(name)

        path.unlink()
        _poll(live_session)

        assert live_session.graph.has(path)
        with pytest.raises(ModuleNotFoundError):
            importlib.import_module(name)

        module_set.write("c", 'VALUE = "back again"\n')
        _poll(live_session)

        assert importlib.import_module(name).VALUE == "back again"

    def test_watch_everything(self, live_session: WatchSession, module_set: ModuleSet) -> None:
        importlib.import_module(module_set.names["a"])
        live_session.start()

        for key in "abc":
            assert live_session.graph.has(module_set.path(key))
        assert not any("site-packages" in str(p) for p in live_session.graph.paths())
        own = Path(importwatch.host.__file__).resolve()
        assert not live_session.graph.has(own)
        assert not any(PACKAGE_DIR in p.parents for p in live_session.graph.paths())

        module_set.write("b", 'VALUE = "b changed"\n')
        _poll(live_session)

        assert module_set.names["b"] not in sys.modules
        assert module_set.names["c"] in sys.modules
        assert importlib.import_module(module_set.names["b"]).VALUE == "b changed"


class TestBackgroundSession:
    def test_module_level_start_reloads(self, module_set: ModuleSet) -> None:
        config = Config()
        config.watch.poll_interval = 0.1
        name = module_set.names["a"]
        importwatch.start(module_set.path("a"), config=config)
        assert importlib.import_module(name).VALUE == "one"

        module_set.write("c", 'VALUE = "threaded"\n')
        deadline = time.monotonic() + 5.0
        while name in sys.modules and time.monotonic() < deadline:
            time.sleep(0.05)

        assert name not in sys.modules
        assert importlib.import_module(name).VALUE == "threaded"
        importwatch.stop()
        assert importwatch.active_session() is None
