"""Modal interaction stack: errors, confirmations and prompts."""

from __future__ import annotations

import logging as py_logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Union

from branchdeck.errors import ModalStateError

logger = py_logging.getLogger(__name__)

Continuation = Callable[[], None]
TextContinuation = Callable[[str], None]


class ModalOutcome(str, Enum):
    CONFIRM = "confirm"
    CANCEL = "cancel"
    SUBMIT = "submit"
    ACKNOWLEDGE = "acknowledge"


@dataclass(frozen=True)
class ErrorModal:
    message: str


@dataclass(frozen=True)
class ConfirmationModal:
    title: str
    message: str
    on_confirm: Continuation
    on_cancel: Continuation | None = None


@dataclass
class PromptModal:
    title: str
    on_submit: TextContinuation
    text: str = ""


ModalDescriptor = Union[ErrorModal, ConfirmationModal, PromptModal]


class ModalStack:
    """Only the top descriptor receives input.

    A descriptor is popped before its continuation runs, so a continuation
    may push a follow-up modal (typically an error) that becomes the new top.
    """

    def __init__(self) -> None:
        self._stack: list[ModalDescriptor] = []

    @property
    def is_active(self) -> bool:
        return bool(self._stack)

    @property
    def depth(self) -> int:
        return len(self._stack)

    def top(self) -> ModalDescriptor | None:
        return self._stack[-1] if self._stack else None

    def push(self, descriptor: ModalDescriptor) -> None:
        logger.debug("Modal push kind=%s depth=%s", type(descriptor).__name__, len(self._stack) + 1)
        self._stack.append(descriptor)

    def type_text(self, chars: str) -> None:
        prompt = self._top_prompt()
        prompt.text += chars

    def backspace(self) -> None:
        prompt = self._top_prompt()
        prompt.text = prompt.text[:-1]

    def resolve_top(self, outcome: ModalOutcome, text: str | None = None) -> None:
        descriptor = self.top()
        if descriptor is None:
            raise ModalStateError("No modal is waiting for input.")

        if isinstance(descriptor, ErrorModal):
            self._stack.pop()
            return

        if isinstance(descriptor, ConfirmationModal):
            if outcome not in (ModalOutcome.CONFIRM, ModalOutcome.CANCEL):
                raise ModalStateError(f"Confirmation cannot be resolved with {outcome.value}.")
            self._stack.pop()
            if outcome is ModalOutcome.CONFIRM:
                descriptor.on_confirm()
            elif descriptor.on_cancel is not None:
                descriptor.on_cancel()
            return

        if outcome not in (ModalOutcome.SUBMIT, ModalOutcome.CANCEL):
            raise ModalStateError(f"Prompt cannot be resolved with {outcome.value}.")
        self._stack.pop()
        if outcome is ModalOutcome.SUBMIT:
            descriptor.on_submit(descriptor.text if text is None else text)

    def _top_prompt(self) -> PromptModal:
        descriptor = self.top()
        if not isinstance(descriptor, PromptModal):
            raise ModalStateError("Text input requires an active prompt.")
        return descriptor
