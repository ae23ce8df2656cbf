"""Key routing and the single event/render loop."""

from __future__ import annotations

import logging as py_logging
import sys
import threading
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from queue import Empty, Queue
from typing import TextIO

from branchdeck.config import AppConfig, load_config
from branchdeck.errors import BranchDeckError, ExitCode, PanelLookupError
from branchdeck.git.commands import GitCommand
from branchdeck.i18n import Localizer
from branchdeck.panels import (
    ActionDispatcher,
    ConfirmationModal,
    ErrorModal,
    GitCommands,
    ModalOutcome,
    PanelState,
    PromptModal,
    RefreshCoordinator,
)
from branchdeck.ui.screen import Screen, TerminalScreen

logger = py_logging.getLogger(__name__)

QUIT_ACTION = "quit"
WORKER_SETTLE_SECONDS = 2.0
INPUT_POLL_SECONDS = 0.12
DEFAULT_BINDINGS: dict[str, tuple[str, ...]] = {
    "move_up": ("k", "up"),
    "move_down": ("j", "down"),
    "checkout": ("space",),
    "force_checkout": ("F",),
    "checkout_by_name": ("c",),
    "new_branch": ("n",),
    "delete_branch": ("d",),
    "force_delete_branch": ("D",),
    "merge": ("M",),
    QUIT_ACTION: ("q",),
}
_OPTION_LABELS = (
    ("checkout", "OptionCheckout"),
    ("force_checkout", "OptionForceCheckout"),
    ("checkout_by_name", "OptionCheckoutByName"),
    ("new_branch", "OptionNewBranch"),
    ("delete_branch", "OptionDelete"),
    ("force_delete_branch", "OptionForceDelete"),
    ("merge", "OptionMerge"),
    (QUIT_ACTION, "OptionQuit"),
)
_CONFIRM_KEYS = {"enter", "y"}
_CANCEL_KEYS = {"esc", "n"}


class KeyMap:
    def __init__(self, overrides: Mapping[str, str] | None = None) -> None:
        bindings = {action: list(keys) for action, keys in DEFAULT_BINDINGS.items()}
        for action, key in (overrides or {}).items():
            if action not in bindings:
                logger.warning("Ignoring keybinding for unknown action=%s", action)
                continue
            bindings[action] = [key]
        self._bindings = bindings
        self._by_key: dict[str, str] = {}
        for action, keys in bindings.items():
            for key in keys:
                self._by_key[key] = action

    def action_for(self, key: str) -> str | None:
        return self._by_key.get(key)

    def primary_key(self, action: str) -> str:
        return self._bindings[action][0]

    def options_text(self, localizer: Localizer) -> str:
        return ", ".join(
            f"{self.primary_key(action)}: {localizer.lookup(label)}"
            for action, label in _OPTION_LABELS
        )


class BranchDeckApp:
    """Owns the render thread's state; every key is handled synchronously."""

    def __init__(
        self,
        git: GitCommands,
        screen: Screen,
        *,
        localizer: Localizer | None = None,
        keymap: KeyMap | None = None,
    ) -> None:
        self.localizer = localizer or Localizer()
        self.keymap = keymap or KeyMap()
        self.coordinator = RefreshCoordinator(git, screen, self.localizer)
        self.dispatcher = ActionDispatcher(
            self.coordinator,
            git,
            self.localizer,
            options_text=lambda: self.keymap.options_text(self.localizer),
        )
        self._handlers = self.dispatcher.actions()

    @property
    def state(self) -> PanelState:
        return self.coordinator.state

    def start(self) -> None:
        self.coordinator.enqueue(on_complete=self.dispatcher.select)
        self.tick()

    def settle(self, timeout: float = WORKER_SETTLE_SECONDS) -> None:
        """Wait for the branch view worker, then apply what it produced.

        The key loop calls it once input has ended, never between keys.
        """
        if self.dispatcher.worker.wait_idle(timeout):
            self.tick()

    def tick(self) -> PanelLookupError | None:
        """Apply worker results, run queued refresh chains and repaint."""
        try:
            self.coordinator.drain_posted()
        except PanelLookupError as exc:
            logger.error("Failed to apply branch view at tick: %s", exc.message)
            return exc
        return self.coordinator.run_pending()

    def handle_key(self, key: str) -> bool:
        """Route one key; returns False when the loop should stop."""
        try:
            if self.state.modals.is_active:
                self._handle_modal_key(key)
                return True
            action = self.keymap.action_for(key)
            if action is None:
                logger.debug("Unbound key=%s", key)
                return True
            if action == QUIT_ACTION:
                return False
            result = self._handlers[action]()
            logger.debug("Action %s -> %s", action, result.value)
        except PanelLookupError as exc:
            logger.error("Failed to handle key=%s: %s", key, exc.message)
        finally:
            self.coordinator.request_render()
        return True

    def _handle_modal_key(self, key: str) -> None:
        modals = self.state.modals
        descriptor = modals.top()
        if isinstance(descriptor, ErrorModal):
            modals.resolve_top(ModalOutcome.ACKNOWLEDGE)
        elif isinstance(descriptor, ConfirmationModal):
            if key in _CONFIRM_KEYS:
                modals.resolve_top(ModalOutcome.CONFIRM)
            elif key in _CANCEL_KEYS:
                modals.resolve_top(ModalOutcome.CANCEL)
        elif isinstance(descriptor, PromptModal):
            if key == "esc":
                modals.resolve_top(ModalOutcome.CANCEL)
            elif key == "enter":
                modals.resolve_top(ModalOutcome.SUBMIT)
            elif key == "backspace":
                modals.backspace()
            else:
                modals.type_text(key)

    def run(self, keys: Iterable[str], *, poll_seconds: float = INPUT_POLL_SECONDS) -> int:
        """Handle keys until quit or end of input.

        Keys are read on a separate thread; between keys the loop wakes every
        ``poll_seconds`` to apply branch views the worker has finished.
        """
        inbox: Queue[str | None] = Queue()
        reader = threading.Thread(
            target=_pump_keys,
            args=(keys, inbox),
            name="branchdeck-input",
            daemon=True,
        )
        self.start()
        reader.start()
        while True:
            key = _next_key(inbox, poll_seconds)
            if key == "":
                self.tick()
                continue
            if key is None:
                logger.debug("End of input")
                self.settle()
                break
            if not self.handle_key(key):
                break
            self.tick()
        return int(ExitCode.SUCCESS)


def _pump_keys(keys: Iterable[str], inbox: Queue[str | None]) -> None:
    try:
        for key in keys:
            if key:
                inbox.put(key)
    finally:
        inbox.put(None)


def _next_key(inbox: Queue[str | None], timeout: float) -> str | None:
    """Next key, ``""`` when none arrived in time, ``None`` at end of input."""
    try:
        return inbox.get(timeout=timeout)
    except Empty:
        return ""


def read_keys(stream: TextIO) -> Iterator[str]:
    """Line-oriented input: one key name per line, a blank line is ``enter``.

    While a prompt is open any other line is typed into it as text.
    """
    for line in stream:
        token = line.rstrip("\r\n")
        if not token:
            yield "enter"
            continue
        yield token


def build_app(
    config: AppConfig,
    *,
    repo_path: str | Path | None = None,
    stream: TextIO | None = None,
) -> BranchDeckApp:
    resolved = Path(repo_path or config.repo_path or Path.cwd()).expanduser()
    git = GitCommand(resolved, graph_max_commits=config.graph_max_commits)
    screen = TerminalScreen(stream or sys.stdout)
    return BranchDeckApp(
        git,
        screen,
        localizer=Localizer(config.strings),
        keymap=KeyMap(config.keybindings),
    )


def launch_app(
    *,
    config_path: str | Path | None = None,
    repo_path: str | Path | None = None,
    keys: Iterable[str] | None = None,
) -> int:
    config = load_config(config_path)
    resolved = Path(repo_path or config.repo_path or Path.cwd()).expanduser()
    if not resolved.is_dir():
        raise BranchDeckError(
            f"Repository is not accessible: {resolved}",
            code=ExitCode.GIT_ERROR,
            hint="Check the path and ensure it is a valid Git repository.",
        )
    app = build_app(config, repo_path=resolved)
    logger.info("Starting branch panel repo=%s", resolved)
    return app.run(keys if keys is not None else read_keys(sys.stdin))
