"""Serialized refresh cascades and render passes for the branch panel."""

from __future__ import annotations

import itertools
import logging as py_logging
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from queue import Empty, Queue

from branchdeck.errors import CommandError, PanelLookupError, ValidationError
from branchdeck.i18n import Localizer
from branchdeck.panels.modals import (
    ConfirmationModal,
    Continuation,
    ErrorModal,
    ModalStack,
    PromptModal,
)
from branchdeck.panels.models import FULL_REFRESH, GitCommands, RefreshStep
from branchdeck.panels.panel import ItemListPanel
from branchdeck.ui.screen import (
    BRANCHES_VIEW,
    MAIN_VIEW,
    MODAL_VIEW,
    STATUS_VIEW,
    Screen,
)

logger = py_logging.getLogger(__name__)

_SELECTED_MARKER = "▸ "
_UNSELECTED_MARKER = "  "


@dataclass(frozen=True)
class DerivedViewToken:
    request_id: int
    index: int
    branch_name: str


@dataclass(frozen=True)
class RefreshChain:
    steps: tuple[RefreshStep, ...] = FULL_REFRESH
    on_complete: Continuation | None = None


@dataclass
class PanelState:
    """Everything the render thread owns; handlers receive it explicitly."""

    panel: ItemListPanel = field(default_factory=ItemListPanel)
    modals: ModalStack = field(default_factory=ModalStack)
    pending_derived_view: DerivedViewToken | None = None
    viewed_branch: str | None = None


class RefreshCoordinator:
    """Sole writer of panel state.

    Chains run strictly in submission order, their steps strictly in listed
    order. Worker threads never touch ``state``; they hand results over with
    :meth:`post` and the render thread applies them in :meth:`drain_posted`.
    """

    def __init__(
        self,
        git: GitCommands,
        screen: Screen,
        localizer: Localizer,
        *,
        state: PanelState | None = None,
    ) -> None:
        self.git = git
        self.screen = screen
        self.localizer = localizer
        self.state = state or PanelState()
        self._chains: deque[RefreshChain] = deque()
        self._posted: Queue[Callable[[], None]] = Queue()
        self._request_ids = itertools.count(1)
        self._dirty = False

    @property
    def pending_chains(self) -> int:
        return len(self._chains)

    def enqueue(
        self,
        steps: Iterable[RefreshStep] = FULL_REFRESH,
        *,
        on_complete: Continuation | None = None,
    ) -> None:
        chain = RefreshChain(steps=tuple(steps), on_complete=on_complete)
        logger.debug("Refresh chain queued steps=%s", [step.value for step in chain.steps])
        self._chains.append(chain)

    def run_pending(self) -> PanelLookupError | None:
        """Run queued chains and render.

        A missing view ends the cycle: the failing chain is dropped, chains
        still queued wait for the next cycle, and the error is returned.
        """
        while self._chains:
            chain = self._chains.popleft()
            try:
                self._run_chain(chain)
            except PanelLookupError as exc:
                logger.error("Refresh cycle aborted at run_pending: %s", exc.message)
                return exc
        try:
            self.flush()
        except PanelLookupError as exc:
            logger.error("Render failed at run_pending: %s", exc.message)
            return exc
        return None

    def _run_chain(self, chain: RefreshChain) -> None:
        for step in chain.steps:
            try:
                self.run_step(step)
            except (CommandError, ValidationError) as exc:
                logger.error("Failed to refresh %s: %s", step.value, exc.message)
                self.show_error(exc.message)
                return
        if chain.on_complete is not None:
            chain.on_complete()

    def run_step(self, step: RefreshStep) -> None:
        if step is RefreshStep.BRANCHES:
            self._refresh_branches()
        elif step is RefreshStep.STATUS:
            self._refresh_status()
        self._dirty = True

    def _refresh_branches(self) -> None:
        try:
            self.screen.view(BRANCHES_VIEW)
        except PanelLookupError:
            logger.error("Failed to get branches view at refresh_branches")
            raise
        items = list(self.git.fetch_list())
        try:
            self.state.panel.replace(items)
        except ValidationError as exc:
            names = ", ".join(item.name for item in items if item.is_current)
            raise ValidationError(
                self.localizer.template("MultipleCurrentBranches", {"branchNames": names}),
                hint=exc.hint,
            ) from exc
        logger.debug("Branch list rebuilt count=%s", len(items))

    def _refresh_status(self) -> None:
        try:
            view = self.screen.view(STATUS_VIEW)
        except PanelLookupError:
            logger.error("Failed to get status view at refresh_status")
            raise
        current = self.state.panel.current_item()
        repo_name = self.git.repo_name()
        if current is None:
            text = self.localizer.template("StatusNoBranch", {"repoName": repo_name})
        else:
            track = f"{current.upstream_track} " if current.upstream_track else ""
            text = self.localizer.template(
                "StatusLine",
                {"track": track, "repoName": repo_name, "branchName": current.name},
            )
        view.clear()
        view.write_line(text)

    def show_error(self, message: str) -> None:
        self.state.modals.push(ErrorModal(message=message))
        self._dirty = True

    def request_render(self) -> None:
        self._dirty = True

    def render_text(self, target: str, text: str) -> None:
        self.screen.render_text(target, text)
        self._dirty = True

    def flush(self) -> None:
        if not self._dirty:
            return
        self.render()

    def render(self) -> None:
        self._render_branches()
        self._render_modal()
        self._dirty = False
        self.screen.flush()

    def _render_branches(self) -> None:
        view = self.screen.view(BRANCHES_VIEW)
        items, index = self.state.panel.snapshot()
        view.clear()
        if not items:
            view.write_line(self.localizer.lookup("NoBranchesThisRepo"))
            return
        for position, item in enumerate(items):
            marker = _SELECTED_MARKER if position == index else _UNSELECTED_MARKER
            view.write_line(marker + item.label)

    def _render_modal(self) -> None:
        view = self.screen.view(MODAL_VIEW)
        view.clear()
        descriptor = self.state.modals.top()
        if descriptor is None:
            return
        if isinstance(descriptor, ErrorModal):
            view.write_line(self.localizer.lookup("Error"))
            view.write_line(descriptor.message)
            view.write_line(self.localizer.lookup("ErrorHint"))
        elif isinstance(descriptor, ConfirmationModal):
            view.write_line(descriptor.title)
            view.write_line(descriptor.message)
            view.write_line(self.localizer.lookup("ConfirmHint"))
        elif isinstance(descriptor, PromptModal):
            view.write_line(descriptor.title)
            view.write_line(self.localizer.template("PromptInput", {"text": descriptor.text}))
            view.write_line(self.localizer.lookup("PromptHint"))

    def next_derived_view_token(self, index: int, branch_name: str) -> DerivedViewToken:
        token = DerivedViewToken(
            request_id=next(self._request_ids), index=index, branch_name=branch_name
        )
        self.state.pending_derived_view = token
        return token

    def post(self, callback: Callable[[], None]) -> None:
        """Thread-safe: queue work for the render thread."""
        self._posted.put(callback)

    def drain_posted(self) -> int:
        drained = 0
        while True:
            try:
                callback = self._posted.get_nowait()
            except Empty:
                return drained
            callback()
            drained += 1

    def apply_derived_view(self, token: DerivedViewToken, text: str) -> bool:
        """Show a worker result unless the selection moved on since it was requested."""
        items, index = self.state.panel.snapshot()
        selected = items[index].name if items else None
        if (
            token != self.state.pending_derived_view
            or token.index != index
            or token.branch_name != selected
        ):
            logger.debug(
                "Discarding stale branch view request=%s branch=%s",
                token.request_id,
                token.branch_name,
            )
            return False
        self.state.pending_derived_view = None
        self.render_text(MAIN_VIEW, text)
        return True
