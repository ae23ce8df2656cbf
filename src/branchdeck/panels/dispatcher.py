"""Branch panel action handlers."""

from __future__ import annotations

import logging as py_logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from branchdeck.errors import CommandError, ValidationError
from branchdeck.i18n import Localizer
from branchdeck.panels.coordinator import PanelState, RefreshCoordinator
from branchdeck.panels.derived_view import DerivedViewWorker
from branchdeck.panels.modals import ConfirmationModal, PromptModal
from branchdeck.panels.models import GitCommands, Item
from branchdeck.ui.screen import MAIN_VIEW, OPTIONS_VIEW

logger = py_logging.getLogger(__name__)

_MISSING_REF_MARKERS = (
    "fatal: ambiguous argument",
    "unknown revision",
    "bad revision",
)


class ActionResult(str, Enum):
    IGNORED = "ignored"
    REJECTED = "rejected"
    AWAITING_CONFIRMATION = "awaiting-confirmation"
    AWAITING_INPUT = "awaiting-input"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def is_missing_ref_error(message: str) -> bool:
    """Return True when git output means there is nothing to compare against."""
    text = message.strip().lower()
    return any(marker in text for marker in _MISSING_REF_MARKERS)


@dataclass(frozen=True)
class _CheckoutBranch:
    dispatcher: ActionDispatcher
    branch_name: str
    force: bool

    def __call__(self) -> None:
        self.dispatcher.run_checkout(self.branch_name, force=self.force)


@dataclass(frozen=True)
class _DeleteBranch:
    dispatcher: ActionDispatcher
    branch_name: str
    force: bool

    def __call__(self) -> None:
        self.dispatcher.run_delete(self.branch_name, force=self.force)


@dataclass(frozen=True)
class _CheckoutTypedName:
    dispatcher: ActionDispatcher

    def __call__(self, text: str) -> None:
        self.dispatcher.run_checkout_by_name(text)


@dataclass(frozen=True)
class _CreateBranch:
    dispatcher: ActionDispatcher

    def __call__(self, text: str) -> None:
        self.dispatcher.run_new_branch(text)


@dataclass(frozen=True)
class _ReselectIfMoved:
    dispatcher: ActionDispatcher

    def __call__(self) -> None:
        self.dispatcher.reselect_if_moved()


class ActionDispatcher:
    """Maps user actions to handlers.

    Handlers are the only callers of the mutating git commands. Continuations
    pushed with a modal capture the branch name at push time; they never read
    the selection again.
    """

    def __init__(
        self,
        coordinator: RefreshCoordinator,
        git: GitCommands,
        localizer: Localizer,
        *,
        worker: DerivedViewWorker | None = None,
        options_text: Callable[[], str] | None = None,
    ) -> None:
        self._coordinator = coordinator
        self._git = git
        self._localizer = localizer
        self._options_text = options_text
        self._command_lock = threading.Lock()
        self._worker = worker or DerivedViewWorker(
            self.compute_branch_view,
            lambda token, text: coordinator.post(
                lambda: coordinator.apply_derived_view(token, text)
            ),
        )

    @property
    def state(self) -> PanelState:
        return self._coordinator.state

    @property
    def worker(self) -> DerivedViewWorker:
        return self._worker

    def actions(self) -> dict[str, Callable[[], ActionResult]]:
        return {
            "move_up": lambda: self.move_selection(-1),
            "move_down": lambda: self.move_selection(1),
            "checkout": self.checkout,
            "force_checkout": self.force_checkout,
            "checkout_by_name": self.checkout_by_name,
            "new_branch": self.new_branch,
            "delete_branch": lambda: self.delete_branch(force=False),
            "force_delete_branch": lambda: self.delete_branch(force=True),
            "merge": self.merge,
        }

    def compute_branch_view(self, branch_name: str) -> str:
        """Runs on the worker thread; must not touch panel state."""
        try:
            return self._git.get_branch_graph(branch_name)
        except CommandError as exc:
            if is_missing_ref_error(exc.message):
                return self._localizer.lookup("NoTrackingThisBranch")
            return exc.message

    def select(self) -> ActionResult:
        if self._options_text is not None:
            self._coordinator.render_text(OPTIONS_VIEW, self._options_text())
        items, index = self.state.panel.snapshot()
        if not items:
            self.state.viewed_branch = None
            self._coordinator.render_text(MAIN_VIEW, self._localizer.lookup("NoBranchesThisRepo"))
            return ActionResult.IGNORED
        branch = items[index]
        self.state.viewed_branch = branch.name
        token = self._coordinator.next_derived_view_token(index, branch.name)
        self._coordinator.render_text(MAIN_VIEW, self._localizer.lookup("Loading"))
        self._worker.schedule(token, branch.name)
        return ActionResult.SUCCEEDED

    def reselect_if_moved(self) -> ActionResult:
        """Re-run select when a refresh left a different branch under the cursor."""
        branch = self.state.panel.selected_item()
        name = branch.name if branch is not None else None
        if name == self.state.viewed_branch:
            return ActionResult.IGNORED
        logger.debug("Cursor now on branch=%s, was %s", name, self.state.viewed_branch)
        return self.select()

    def move_selection(self, delta: int) -> ActionResult:
        if not self.state.panel.move_selection(delta):
            return ActionResult.IGNORED
        self._coordinator.request_render()
        return self.select()

    def checkout(self) -> ActionResult:
        branch = self._selected("checkout")
        if branch is None:
            return ActionResult.IGNORED
        if branch.is_current:
            return self._reject("AlreadyCheckedOutBranch")
        return self.run_checkout(branch.name, force=False)

    def force_checkout(self) -> ActionResult:
        branch = self._selected("force_checkout")
        if branch is None:
            return ActionResult.IGNORED
        self.state.modals.push(
            ConfirmationModal(
                title=self._localizer.lookup("ForceCheckoutBranch"),
                message=self._localizer.lookup("SureForceCheckout"),
                on_confirm=_CheckoutBranch(self, branch.name, force=True),
            )
        )
        self._coordinator.request_render()
        return ActionResult.AWAITING_CONFIRMATION

    def checkout_by_name(self) -> ActionResult:
        self.state.modals.push(
            PromptModal(
                title=self._localizer.lookup("BranchNamePrompt"),
                on_submit=_CheckoutTypedName(self),
            )
        )
        self._coordinator.request_render()
        return ActionResult.AWAITING_INPUT

    def new_branch(self) -> ActionResult:
        current = self.state.panel.current_item()
        base = current.name if current is not None else self._localizer.lookup("DetachedHead")
        self.state.modals.push(
            PromptModal(
                title=self._localizer.template("NewBranchNameBranchOff", {"branchName": base}),
                on_submit=_CreateBranch(self),
            )
        )
        self._coordinator.request_render()
        return ActionResult.AWAITING_INPUT

    def delete_branch(self, *, force: bool) -> ActionResult:
        branch = self._selected("delete_branch")
        if branch is None:
            return ActionResult.IGNORED
        if branch.is_current:
            return self._reject("CantDeleteCheckOutBranch")
        message_key = "ForceDeleteBranchMessage" if force else "DeleteBranchMessage"
        self.state.modals.push(
            ConfirmationModal(
                title=self._localizer.lookup("DeleteBranch"),
                message=self._localizer.template(
                    message_key, {"selectedBranchName": branch.name}
                ),
                on_confirm=_DeleteBranch(self, branch.name, force=force),
            )
        )
        self._coordinator.request_render()
        return ActionResult.AWAITING_CONFIRMATION

    def merge(self) -> ActionResult:
        branch = self._selected("merge")
        if branch is None:
            return ActionResult.IGNORED
        if branch.is_current:
            return self._reject("CantMergeBranchIntoItself")
        succeeded = self._execute("merge", self._git.merge, branch.name)
        # Refresh whether or not the merge succeeded.
        self._coordinator.enqueue(on_complete=_ReselectIfMoved(self))
        return ActionResult.SUCCEEDED if succeeded else ActionResult.FAILED

    def run_checkout(self, branch_name: str, *, force: bool) -> ActionResult:
        if not self._execute("checkout", self._git.checkout, branch_name, force):
            return ActionResult.FAILED
        self._coordinator.enqueue(on_complete=_ReselectIfMoved(self))
        return ActionResult.SUCCEEDED

    def run_checkout_by_name(self, text: str) -> ActionResult:
        name = text.strip()
        if not name:
            return self._reject("BranchNameRequired")
        return self.run_checkout(name, force=False)

    def run_new_branch(self, text: str) -> ActionResult:
        name = text.strip()
        if not name:
            return self._reject("BranchNameRequired")
        if not self._execute("new_branch", self._git.new_branch, name):
            return ActionResult.FAILED

        def _select_new_branch() -> None:
            self.state.panel.select_name(name)
            self.select()

        self._coordinator.enqueue(on_complete=_select_new_branch)
        return ActionResult.SUCCEEDED

    def run_delete(self, branch_name: str, *, force: bool) -> ActionResult:
        if not self._execute("delete_branch", self._git.delete_branch, branch_name, force):
            return ActionResult.FAILED
        self._coordinator.enqueue(on_complete=_ReselectIfMoved(self))
        return ActionResult.SUCCEEDED

    def _selected(self, operation: str) -> Item | None:
        branch = self.state.panel.selected_item()
        if branch is None:
            logger.debug("Ignoring %s: branch list is empty", operation)
        return branch

    def _reject(self, message_key: str) -> ActionResult:
        error = ValidationError(self._localizer.lookup(message_key))
        logger.info("Rejected action: %s", error.message)
        self._coordinator.show_error(error.message)
        return ActionResult.REJECTED

    def _execute(self, operation: str, command: Callable[..., None], *args: object) -> bool:
        with self._command_lock:
            try:
                command(*args)
            except CommandError as exc:
                logger.warning("Git %s failed args=%s: %s", operation, args, exc.message)
                self._coordinator.show_error(exc.message)
                return False
        logger.debug("Git %s succeeded args=%s", operation, args)
        return True
