"""Named text views and a stream-backed terminal painter."""

from __future__ import annotations

import logging as py_logging
from collections.abc import Iterable
from typing import TextIO

from branchdeck.errors import PanelLookupError

logger = py_logging.getLogger(__name__)

BRANCHES_VIEW = "branches"
MAIN_VIEW = "main"
STATUS_VIEW = "status"
OPTIONS_VIEW = "options"
MODAL_VIEW = "modal"
DEFAULT_VIEWS: tuple[str, ...] = (STATUS_VIEW, BRANCHES_VIEW, MAIN_VIEW, OPTIONS_VIEW, MODAL_VIEW)

_CLEAR_SCREEN = "\x1b[2J\x1b[H"


class View:
    def __init__(self, name: str) -> None:
        self.name = name
        self.lines: list[str] = []

    def clear(self) -> None:
        self.lines = []

    def write_line(self, text: str) -> None:
        self.lines.extend(text.splitlines() or [""])

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


class Screen:
    def __init__(self, views: Iterable[str] = DEFAULT_VIEWS) -> None:
        self._views = {name: View(name) for name in views}

    @property
    def view_names(self) -> tuple[str, ...]:
        return tuple(self._views)

    def view(self, name: str) -> View:
        try:
            return self._views[name]
        except KeyError:
            raise PanelLookupError(f"Unknown view: {name}", view=name) from None

    def render_text(self, target: str, text: str) -> None:
        view = self.view(target)
        view.clear()
        view.write_line(text)

    def flush(self) -> None:
        """Hook for screens that paint somewhere; in-memory views do nothing."""


class TerminalScreen(Screen):
    """Repaints every view, top to bottom, on each flush."""

    def __init__(
        self,
        stream: TextIO,
        views: Iterable[str] = DEFAULT_VIEWS,
        *,
        clear: bool = True,
    ) -> None:
        super().__init__(views)
        self._stream = stream
        self._clear = clear

    def flush(self) -> None:
        chunks: list[str] = [_CLEAR_SCREEN] if self._clear else []
        for name in self.view_names:
            view = self.view(name)
            if not view.lines:
                continue
            chunks.append(f"── {name} ──")
            chunks.extend(view.lines)
        self._stream.write("\n".join(chunks) + "\n")
        self._stream.flush()
