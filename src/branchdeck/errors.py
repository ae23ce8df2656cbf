"""Deterministic error model and exit code contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    INVALID_ARGS = 2
    CONFIG_ERROR = 3
    RUNTIME_ERROR = 4
    GIT_ERROR = 5
    VALIDATION_ERROR = 7
    UI_ERROR = 9


@dataclass
class BranchDeckError(Exception):
    message: str
    code: ExitCode = ExitCode.RUNTIME_ERROR
    hint: str = ""

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message


@dataclass
class ValidationError(BranchDeckError):
    """Precondition detected locally, before any git command runs."""

    code: ExitCode = ExitCode.VALIDATION_ERROR


@dataclass
class CommandError(BranchDeckError):
    """Failure reported by the git command layer; message is git's raw output."""

    code: ExitCode = ExitCode.GIT_ERROR


@dataclass
class PanelLookupError(BranchDeckError):
    """A named view is not registered on the screen."""

    code: ExitCode = ExitCode.UI_ERROR
    view: str = ""


@dataclass
class ModalStateError(BranchDeckError):
    code: ExitCode = ExitCode.UI_ERROR


def user_facing_error(message: str, *, hint: str = "") -> str:
    if hint:
        return f"Error: {message}. Next step: {hint}"
    return f"Error: {message}."
