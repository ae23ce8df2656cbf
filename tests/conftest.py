from __future__ import annotations

import threading
from pathlib import Path

import pytest

from branchdeck.errors import CommandError
from branchdeck.i18n import Localizer
from branchdeck.panels import ActionDispatcher, Item, RefreshCoordinator
from branchdeck.ui.screen import Screen


@pytest.hookimpl(trylast=True)
def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    del config
    for item in items:
        path = Path(str(getattr(item, "path", item.fspath)))
        if "integration" in path.parts:
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.slow)


class FakeGit:
    """In-memory stand-in for ``GitCommand`` that records every call."""

    def __init__(self, branches: list[str] | None = None, current: str = "main") -> None:
        self.branches = list(branches if branches is not None else ["main", "feature"])
        self.current = current
        self.calls: list[tuple[object, ...]] = []
        self.failures: dict[str, str] = {}
        self.graph_failures: dict[str, str] = {}
        self._lock = threading.Lock()

    def _record(self, operation: str, *args: object) -> None:
        with self._lock:
            self.calls.append((operation, *args))
        if operation in self.failures:
            raise CommandError(self.failures[operation])

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)

    def mutating_calls(self) -> list[tuple[object, ...]]:
        return [
            call
            for call in self.calls
            if call[0] in {"checkout", "new_branch", "delete_branch", "merge"}
        ]

    def checkout(self, name: str, force: bool = False) -> None:
        self._record("checkout", name, force)
        if name not in self.branches:
            raise CommandError(f"error: pathspec '{name}' did not match any file(s) known to git")
        self.current = name

    def new_branch(self, name: str) -> None:
        self._record("new_branch", name)
        self.branches.append(name)
        self.current = name

    def delete_branch(self, name: str, force: bool = False) -> None:
        self._record("delete_branch", name, force)
        self.branches.remove(name)

    def merge(self, name: str) -> None:
        self._record("merge", name)

    def fetch_list(self) -> list[Item]:
        self._record("fetch_list")
        ordered = [self.current] + [name for name in self.branches if name != self.current]
        return [
            Item(name=name, display_label=name, is_current=name == self.current)
            for name in ordered
            if name in self.branches
        ]

    def get_branch_graph(self, name: str) -> str:
        self._record("get_branch_graph", name)
        if name in self.graph_failures:
            raise CommandError(self.graph_failures[name])
        return f"* graph of {name}"

    def repo_name(self) -> str:
        return "repo"


@pytest.fixture
def fake_git() -> FakeGit:
    return FakeGit()


@pytest.fixture
def screen() -> Screen:
    return Screen()


@pytest.fixture
def coordinator(fake_git: FakeGit, screen: Screen) -> RefreshCoordinator:
    return RefreshCoordinator(fake_git, screen, Localizer())


@pytest.fixture
def dispatcher(coordinator: RefreshCoordinator, fake_git: FakeGit) -> ActionDispatcher:
    return ActionDispatcher(coordinator, fake_git, Localizer(), options_text=lambda: "q: quit")


@pytest.fixture
def loaded(coordinator: RefreshCoordinator, fake_git: FakeGit) -> RefreshCoordinator:
    """Coordinator whose panel holds the fake's branches; call log is reset."""
    coordinator.enqueue()
    assert coordinator.run_pending() is None
    fake_git.calls.clear()
    return coordinator
