"""Background worker computing the branch graph shown for the selection."""

from __future__ import annotations

import logging as py_logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from branchdeck.panels.coordinator import DerivedViewToken

logger = py_logging.getLogger(__name__)


@dataclass(frozen=True)
class DerivedViewRequest:
    token: DerivedViewToken
    branch_name: str


class DerivedViewWorker:
    """Single-threaded latest-request-wins scheduler.

    Results are never applied here; ``deliver`` receives ``(token, text)`` and
    is expected to hand it to the render thread.
    """

    def __init__(
        self,
        compute: Callable[[str], str],
        deliver: Callable[[DerivedViewToken, str], None],
    ) -> None:
        self._compute = compute
        self._deliver = deliver
        self._lock = threading.Lock()
        self._pending: DerivedViewRequest | None = None
        self._running = False
        self._idle = threading.Event()
        self._idle.set()

    def _worker(self) -> None:
        while True:
            with self._lock:
                request = self._pending
                self._pending = None
                if request is None:
                    self._running = False
                    self._idle.set()
                    return

            try:
                text = self._compute(request.branch_name)
            except Exception:
                logger.exception("Branch view computation failed branch=%s", request.branch_name)
                continue
            self._deliver(request.token, text)

    def schedule(self, token: DerivedViewToken, branch_name: str) -> None:
        """Queue or replace pending work."""
        with self._lock:
            self._pending = DerivedViewRequest(token=token, branch_name=branch_name)
            if self._running:
                return
            self._running = True
            self._idle.clear()

        worker = threading.Thread(
            target=self._worker,
            name="branchdeck-branch-view",
            daemon=True,
        )
        worker.start()

    def wait_idle(self, timeout: float | None = None) -> bool:
        return self._idle.wait(timeout)
