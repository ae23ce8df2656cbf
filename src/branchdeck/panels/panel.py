"""Ordered branch list with a single selection cursor."""

from __future__ import annotations

import threading
from collections.abc import Iterable

from branchdeck.errors import ValidationError
from branchdeck.panels.models import Item


def _current_first(items: Iterable[Item]) -> tuple[Item, ...]:
    ordered = tuple(items)
    current = [index for index, item in enumerate(ordered) if item.is_current]
    if len(current) > 1:
        names = ", ".join(ordered[index].name for index in current)
        raise ValidationError(
            f"More than one branch is marked current: {names}",
            hint="The branch list must contain at most one checked out branch.",
        )
    if not current or current[0] == 0:
        return ordered
    index = current[0]
    return (ordered[index], *ordered[:index], *ordered[index + 1 :])


class ItemListPanel:
    """Pure state: no I/O, the coordinator decides when to re-render.

    The list and the cursor are swapped together under a lock, so a reader
    calling :meth:`snapshot` from another thread sees either the old pair or
    the new pair, never a mix.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: tuple[Item, ...] = ()
        self._index = 0
        self._version = 0

    @property
    def items(self) -> tuple[Item, ...]:
        return self._items

    @property
    def selected_index(self) -> int:
        return self._index

    @property
    def version(self) -> int:
        return self._version

    def __len__(self) -> int:
        return len(self._items)

    def snapshot(self) -> tuple[tuple[Item, ...], int]:
        with self._lock:
            return self._items, self._index

    def replace(self, items: Iterable[Item]) -> None:
        ordered = _current_first(items)
        with self._lock:
            self._items = ordered
            self._index = _clamp(self._index, len(ordered))
            self._version += 1

    def selected_item(self) -> Item | None:
        items, index = self.snapshot()
        if not items:
            return None
        return items[index]

    def current_item(self) -> Item | None:
        for item in self._items:
            if item.is_current:
                return item
        return None

    def move_selection(self, delta: int) -> bool:
        with self._lock:
            previous = self._index
            self._index = _clamp(self._index + delta, len(self._items))
            return self._index != previous

    def select_name(self, name: str) -> bool:
        with self._lock:
            for index, item in enumerate(self._items):
                if item.name == name:
                    self._index = index
                    return True
        return False


def _clamp(index: int, length: int) -> int:
    if length <= 0:
        return 0
    return max(0, min(index, length - 1))
