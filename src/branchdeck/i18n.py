"""Message catalog used for every user-facing string."""

from __future__ import annotations

import logging as py_logging
from collections.abc import Mapping

logger = py_logging.getLogger(__name__)

ENGLISH: dict[str, str] = {
    "AlreadyCheckedOutBranch": "You have already checked out this branch",
    "SureForceCheckout": "Are you sure you want force checkout? You will lose all local changes",
    "ForceCheckoutBranch": "Force Checkout Branch",
    "BranchNamePrompt": "Branch name:",
    "BranchNameRequired": "Branch name cannot be empty",
    "NewBranchNameBranchOff": "New branch name (branch is off of '{branchName}')",
    "DetachedHead": "HEAD",
    "CantDeleteCheckOutBranch": "You cannot delete the checked out branch!",
    "DeleteBranch": "Delete Branch",
    "DeleteBranchMessage": "Are you sure you want to delete the branch '{selectedBranchName}'?",
    "ForceDeleteBranchMessage": "Are you sure you want to force delete the branch '{selectedBranchName}'?",
    "CantMergeBranchIntoItself": "You cannot merge a branch into itself",
    "MultipleCurrentBranches": "More than one branch is marked current: {branchNames}",
    "NoBranchesThisRepo": "No branches for this repo",
    "NoTrackingThisBranch": "There is no tracking for this branch",
    "Error": "Error",
    "Loading": "loading...",
    "StatusLine": "{track}{repoName} → {branchName}",
    "StatusNoBranch": "{repoName} → (no branch)",
    "ConfirmHint": "[enter/y] confirm  [esc/n] cancel",
    "PromptInput": "> {text}",
    "PromptHint": "[enter] submit  [esc] cancel",
    "ErrorHint": "[enter] close",
    "OptionCheckout": "checkout",
    "OptionForceCheckout": "force checkout",
    "OptionCheckoutByName": "checkout by name",
    "OptionNewBranch": "new branch",
    "OptionDelete": "delete branch",
    "OptionForceDelete": "force delete branch",
    "OptionMerge": "merge into current",
    "OptionQuit": "quit",
}


class _Params(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


class Localizer:
    def __init__(self, overrides: Mapping[str, str] | None = None) -> None:
        self._catalog = dict(ENGLISH)
        if overrides:
            self._catalog.update(overrides)

    def lookup(self, key: str) -> str:
        try:
            return self._catalog[key]
        except KeyError:
            logger.debug("Missing translation key=%s", key)
            return key

    def template(self, key: str, params: Mapping[str, str]) -> str:
        """Fill ``{name}`` placeholders; unknown placeholders are left as-is."""
        text = self.lookup(key)
        try:
            return text.format_map(_Params(params))
        except (ValueError, IndexError):
            logger.warning("Malformed template key=%s", key)
            return text
