from __future__ import annotations

import threading

import pytest

from branchdeck.i18n import Localizer
from branchdeck.panels import (
    ActionDispatcher,
    ActionResult,
    ConfirmationModal,
    DerivedViewWorker,
    ErrorModal,
    ModalOutcome,
    PromptModal,
    is_missing_ref_error,
)
from branchdeck.ui.screen import MAIN_VIEW, OPTIONS_VIEW


def _error_text(coordinator) -> str:
    top = coordinator.state.modals.top()
    assert isinstance(top, ErrorModal)
    return top.message


def _settle(dispatcher: ActionDispatcher, coordinator) -> None:
    assert dispatcher.worker.wait_idle(5)
    coordinator.drain_posted()


def test_soft_checkout_of_other_branch_refreshes_once(loaded, dispatcher, fake_git) -> None:
    loaded.state.panel.move_selection(1)

    result = dispatcher.checkout()
    assert result is ActionResult.SUCCEEDED
    assert fake_git.calls == [("checkout", "feature", False)]
    assert loaded.pending_chains == 1

    assert loaded.run_pending() is None
    assert fake_git.count("fetch_list") == 1
    assert [item.name for item in loaded.state.panel.items] == ["feature", "main"]
    assert loaded.state.panel.selected_index == 1


def test_checkout_of_current_branch_is_rejected(loaded, dispatcher, fake_git) -> None:
    assert dispatcher.checkout() is ActionResult.REJECTED

    assert fake_git.calls == []
    assert loaded.pending_chains == 0
    assert _error_text(loaded) == "You have already checked out this branch"


def test_checkout_failure_shows_raw_message_without_refresh(loaded, dispatcher, fake_git) -> None:
    fake_git.failures["checkout"] = "error: Your local changes would be overwritten by checkout"
    loaded.state.panel.move_selection(1)

    assert dispatcher.checkout() is ActionResult.FAILED

    assert _error_text(loaded) == "error: Your local changes would be overwritten by checkout"
    assert loaded.pending_chains == 0


def test_force_checkout_waits_for_confirmation(loaded, dispatcher, fake_git) -> None:
    loaded.state.panel.move_selection(1)

    assert dispatcher.force_checkout() is ActionResult.AWAITING_CONFIRMATION
    assert fake_git.mutating_calls() == []
    modal = loaded.state.modals.top()
    assert isinstance(modal, ConfirmationModal)
    assert modal.title == "Force Checkout Branch"

    loaded.state.modals.resolve_top(ModalOutcome.CONFIRM)

    assert fake_git.mutating_calls() == [("checkout", "feature", True)]
    assert loaded.pending_chains == 1


def test_force_checkout_cancel_runs_nothing(loaded, dispatcher, fake_git) -> None:
    loaded.state.panel.move_selection(1)
    dispatcher.force_checkout()

    loaded.state.modals.resolve_top(ModalOutcome.CANCEL)

    assert fake_git.calls == []
    assert loaded.pending_chains == 0
    assert not loaded.state.modals.is_active


def test_confirmation_uses_branch_captured_at_push_time(loaded, dispatcher, fake_git) -> None:
    fake_git.branches.append("other")
    loaded.enqueue()
    loaded.run_pending()
    loaded.state.panel.move_selection(1)
    dispatcher.delete_branch(force=False)

    loaded.state.panel.move_selection(1)
    assert loaded.state.panel.selected_item().name == "other"
    loaded.state.modals.resolve_top(ModalOutcome.CONFIRM)

    assert fake_git.mutating_calls() == [("delete_branch", "feature", False)]


def test_checkout_by_name_submits_trimmed_text(loaded, dispatcher, fake_git) -> None:
    assert dispatcher.checkout_by_name() is ActionResult.AWAITING_INPUT
    assert loaded.state.modals.top().title == "Branch name:"

    loaded.state.modals.type_text("  feature ")
    loaded.state.modals.resolve_top(ModalOutcome.SUBMIT)

    assert fake_git.mutating_calls() == [("checkout", "feature", False)]
    assert loaded.pending_chains == 1


def test_checkout_by_name_failure_leaves_prompt_dismissed(loaded, dispatcher, fake_git) -> None:
    dispatcher.checkout_by_name()
    loaded.state.modals.resolve_top(ModalOutcome.SUBMIT, text="nope")

    assert loaded.state.modals.depth == 1
    assert "pathspec 'nope'" in _error_text(loaded)
    assert loaded.pending_chains == 0


def test_new_branch_prompt_names_current_branch(loaded, dispatcher) -> None:
    dispatcher.new_branch()

    modal = loaded.state.modals.top()
    assert isinstance(modal, PromptModal)
    assert modal.title == "New branch name (branch is off of 'main')"


def test_new_branch_success_refreshes_then_selects_it(loaded, dispatcher, fake_git, screen) -> None:
    dispatcher.new_branch()
    loaded.state.modals.resolve_top(ModalOutcome.SUBMIT, text="topic")

    assert fake_git.mutating_calls() == [("new_branch", "topic")]
    assert loaded.run_pending() is None
    assert fake_git.count("fetch_list") == 1
    assert loaded.state.panel.selected_item().name == "topic"
    assert screen.view(OPTIONS_VIEW).lines == ["q: quit"]

    _settle(dispatcher, loaded)
    assert screen.view(MAIN_VIEW).lines == ["* graph of topic"]


def test_new_branch_failure_skips_refresh(loaded, dispatcher, fake_git) -> None:
    fake_git.failures["new_branch"] = "fatal: A branch named 'main' already exists."
    dispatcher.new_branch()
    loaded.state.modals.resolve_top(ModalOutcome.SUBMIT, text="main")

    assert _error_text(loaded) == "fatal: A branch named 'main' already exists."
    assert loaded.pending_chains == 0


@pytest.mark.parametrize("text", ["", "   ", "\t\n"])
def test_blank_new_branch_name_is_rejected(loaded, dispatcher, fake_git, text: str) -> None:
    dispatcher.new_branch()
    loaded.state.modals.resolve_top(ModalOutcome.SUBMIT, text=text)

    assert fake_git.calls == []
    assert loaded.pending_chains == 0
    assert _error_text(loaded) == "Branch name cannot be empty"


@pytest.mark.parametrize("force", [False, True])
def test_delete_current_branch_is_rejected(loaded, dispatcher, fake_git, force: bool) -> None:
    assert dispatcher.delete_branch(force=force) is ActionResult.REJECTED

    assert fake_git.calls == []
    assert loaded.pending_chains == 0
    assert _error_text(loaded) == "You cannot delete the checked out branch!"


def test_delete_only_branch_is_rejected(fake_git, coordinator, dispatcher) -> None:
    fake_git.branches = ["main"]
    coordinator.enqueue()
    coordinator.run_pending()
    fake_git.calls.clear()

    assert dispatcher.delete_branch(force=False) is ActionResult.REJECTED
    assert fake_git.calls == []
    assert coordinator.pending_chains == 0


@pytest.mark.parametrize(
    ("force", "message"),
    [
        (False, "Are you sure you want to delete the branch 'feature'?"),
        (True, "Are you sure you want to force delete the branch 'feature'?"),
    ],
)
def test_delete_confirmation_message_depends_on_force(
    loaded, dispatcher, fake_git, force: bool, message: str
) -> None:
    loaded.state.panel.move_selection(1)
    dispatcher.delete_branch(force=force)

    modal = loaded.state.modals.top()
    assert modal.title == "Delete Branch"
    assert modal.message == message

    loaded.state.modals.resolve_top(ModalOutcome.CONFIRM)
    assert fake_git.mutating_calls() == [("delete_branch", "feature", force)]
    assert loaded.run_pending() is None
    assert [item.name for item in loaded.state.panel.items] == ["main"]
    assert loaded.state.panel.selected_index == 0


def test_delete_failure_shows_error_without_refresh(loaded, dispatcher, fake_git) -> None:
    fake_git.failures["delete_branch"] = "error: The branch 'feature' is not fully merged."
    loaded.state.panel.move_selection(1)
    dispatcher.delete_branch(force=False)
    loaded.state.modals.resolve_top(ModalOutcome.CONFIRM)

    assert _error_text(loaded) == "error: The branch 'feature' is not fully merged."
    assert loaded.pending_chains == 0


def test_merge_into_itself_is_rejected(loaded, dispatcher, fake_git) -> None:
    assert dispatcher.merge() is ActionResult.REJECTED

    assert fake_git.calls == []
    assert loaded.pending_chains == 0
    assert _error_text(loaded) == "You cannot merge a branch into itself"


def test_merge_runs_without_confirmation_and_refreshes(loaded, dispatcher, fake_git) -> None:
    loaded.state.panel.move_selection(1)

    assert dispatcher.merge() is ActionResult.SUCCEEDED

    assert fake_git.mutating_calls() == [("merge", "feature")]
    assert not loaded.state.modals.is_active
    assert loaded.pending_chains == 1


def test_merge_failure_still_refreshes(loaded, dispatcher, fake_git) -> None:
    fake_git.failures["merge"] = "CONFLICT (content): Merge conflict in app.py"
    loaded.state.panel.move_selection(1)

    assert dispatcher.merge() is ActionResult.FAILED

    assert _error_text(loaded) == "CONFLICT (content): Merge conflict in app.py"
    assert loaded.run_pending() is None
    assert fake_git.count("fetch_list") == 1


def test_actions_on_empty_list_are_ignored(coordinator, dispatcher, fake_git) -> None:
    assert dispatcher.checkout() is ActionResult.IGNORED
    assert dispatcher.force_checkout() is ActionResult.IGNORED
    assert dispatcher.delete_branch(force=True) is ActionResult.IGNORED
    assert dispatcher.merge() is ActionResult.IGNORED
    assert fake_git.calls == []
    assert not coordinator.state.modals.is_active


def test_select_on_empty_list_shows_empty_state(coordinator, dispatcher, screen) -> None:
    assert dispatcher.select() is ActionResult.IGNORED
    assert screen.view(MAIN_VIEW).lines == ["No branches for this repo"]


def test_select_renders_graph_from_worker(loaded, dispatcher, screen) -> None:
    dispatcher.select()
    assert screen.view(MAIN_VIEW).lines == ["loading..."]

    _settle(dispatcher, loaded)

    assert screen.view(MAIN_VIEW).lines == ["* graph of main"]


def test_missing_upstream_is_informational(loaded, dispatcher, fake_git, screen) -> None:
    fake_git.graph_failures["feature"] = (
        "fatal: ambiguous argument 'feature': unknown revision or path not in the working tree."
    )
    dispatcher.move_selection(1)
    _settle(dispatcher, loaded)

    assert screen.view(MAIN_VIEW).lines == ["There is no tracking for this branch"]
    assert not loaded.state.modals.is_active


def test_other_graph_failures_render_raw_text(loaded, dispatcher, fake_git, screen) -> None:
    fake_git.graph_failures["main"] = "fatal: your current branch appears to be broken"
    dispatcher.select()
    _settle(dispatcher, loaded)

    assert screen.view(MAIN_VIEW).lines == ["fatal: your current branch appears to be broken"]
    assert not loaded.state.modals.is_active


def test_move_selection_at_edge_does_not_refetch(loaded, dispatcher, fake_git) -> None:
    assert dispatcher.move_selection(-1) is ActionResult.IGNORED
    assert fake_git.calls == []


def test_stale_graph_is_discarded_after_selection_changes(loaded, fake_git, screen) -> None:
    release = threading.Event()
    started = threading.Event()

    def slow_graph(name: str) -> str:
        if name == "main":
            started.set()
            release.wait(5)
        return f"* graph of {name}"

    worker = DerivedViewWorker(
        slow_graph,
        lambda token, text: loaded.post(lambda: loaded.apply_derived_view(token, text)),
    )
    dispatcher = ActionDispatcher(loaded, fake_git, Localizer(), worker=worker)

    dispatcher.select()
    assert started.wait(5)
    dispatcher.move_selection(1)
    release.set()
    _settle(dispatcher, loaded)

    assert screen.view(MAIN_VIEW).lines == ["* graph of feature"]


def test_missing_ref_detection() -> None:
    assert is_missing_ref_error("fatal: ambiguous argument 'x@{u}': unknown revision")
    assert is_missing_ref_error("fatal: bad revision 'gone'")
    assert not is_missing_ref_error("fatal: not a git repository")


def test_refresh_reselects_when_branch_under_cursor_changes(loaded, dispatcher, screen) -> None:
    dispatcher.move_selection(1)
    _settle(dispatcher, loaded)
    assert screen.view(MAIN_VIEW).lines == ["* graph of feature"]

    dispatcher.checkout()
    assert loaded.run_pending() is None
    _settle(dispatcher, loaded)

    assert loaded.state.panel.selected_item().name == "main"
    assert screen.view(MAIN_VIEW).lines == ["* graph of main"]


def test_refresh_keeps_graph_when_cursor_stays_on_same_branch(loaded, dispatcher, fake_git) -> None:
    dispatcher.move_selection(1)
    _settle(dispatcher, loaded)
    fake_git.calls.clear()

    dispatcher.merge()
    assert loaded.run_pending() is None
    _settle(dispatcher, loaded)

    assert loaded.state.panel.selected_item().name == "feature"
    assert fake_git.count("get_branch_graph") == 0


def test_delete_refresh_reselects_clamped_branch(loaded, dispatcher, screen) -> None:
    dispatcher.move_selection(1)
    dispatcher.delete_branch(force=True)
    loaded.state.modals.resolve_top(ModalOutcome.CONFIRM)
    assert loaded.run_pending() is None
    _settle(dispatcher, loaded)

    assert loaded.state.viewed_branch == "main"
    assert screen.view(MAIN_VIEW).lines == ["* graph of main"]


def test_new_branch_without_current_branch_uses_localized_base(fake_git, coordinator) -> None:
    fake_git.current = "detached"
    coordinator.enqueue()
    coordinator.run_pending()
    dispatcher = ActionDispatcher(coordinator, fake_git, Localizer({"DetachedHead": "(detached)"}))

    dispatcher.new_branch()

    assert coordinator.state.modals.top().title == "New branch name (branch is off of '(detached)')"
