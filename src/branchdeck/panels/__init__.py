"""Branch list panel: state, refresh coordination, modals and actions."""

from .coordinator import DerivedViewToken, PanelState, RefreshChain, RefreshCoordinator
from .derived_view import DerivedViewWorker
from .dispatcher import ActionDispatcher, ActionResult, is_missing_ref_error
from .modals import ConfirmationModal, ErrorModal, ModalOutcome, ModalStack, PromptModal
from .models import FULL_REFRESH, GitCommands, Item, RefreshStep
from .panel import ItemListPanel

__all__ = [
    "ActionDispatcher",
    "ActionResult",
    "ConfirmationModal",
    "DerivedViewToken",
    "DerivedViewWorker",
    "ErrorModal",
    "FULL_REFRESH",
    "GitCommands",
    "is_missing_ref_error",
    "Item",
    "ItemListPanel",
    "ModalOutcome",
    "ModalStack",
    "PanelState",
    "PromptModal",
    "RefreshChain",
    "RefreshCoordinator",
    "RefreshStep",
]
