"""Branch panel domain models and the git command contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


@dataclass(frozen=True)
class Item:
    name: str
    display_label: str = ""
    is_current: bool = False
    upstream_track: str = ""

    @property
    def label(self) -> str:
        return self.display_label or self.name


class RefreshStep(str, Enum):
    BRANCHES = "branches"
    STATUS = "status"


FULL_REFRESH: tuple[RefreshStep, ...] = (RefreshStep.BRANCHES, RefreshStep.STATUS)


class GitCommands(Protocol):
    """Domain command interface; every failure raises ``CommandError``."""

    def checkout(self, name: str, force: bool = False) -> None: ...

    def new_branch(self, name: str) -> None: ...

    def delete_branch(self, name: str, force: bool = False) -> None: ...

    def merge(self, name: str) -> None: ...

    def fetch_list(self) -> list[Item]: ...

    def get_branch_graph(self, name: str) -> str: ...

    def repo_name(self) -> str: ...
