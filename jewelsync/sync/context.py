"""
Per-operation context: progress reporting, cancellation and the
process-wide in-flight guard.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator

from jewelsync.sync.exceptions import ConcurrencyError, OperationCancelledError

logger = logging.getLogger(__name__)

ProgressSink = Callable[[str, int], None]


def _discard(message: str, percent: int) -> None:
    pass


class OperationContext:
    """
    Carried through one backup/restore pipeline.

    Progress is forwarded to the sink synchronously from whichever thread
    runs the operation; percentages never go backwards. Cancellation is
    cooperative and checked between pipeline steps and entity passes.
    """

    def __init__(
        self,
        progress: ProgressSink | None = None,
        cancel_event: threading.Event | None = None,
    ):
        self._sink = progress or _discard
        self.cancel_event = cancel_event or threading.Event()
        self.last_percent = 0
        self.last_message = ""

    def report(self, message: str, percent: int) -> None:
        percent = max(self.last_percent, min(100, int(percent)))
        self.last_percent = percent
        self.last_message = message
        self._sink(message, percent)

    def child(self, offset: int, factor: float) -> "OperationContext":
        """
        Context for a sub-step whose 0-100 progress maps onto part of ours.

        Example: child(20, 0.4) reports a sub-step's 50% as 40%.
        """
        return OperationContext(
            progress=lambda message, percent: self.report(message, int(percent * factor) + offset),
            cancel_event=self.cancel_event,
        )

    def cancel(self) -> None:
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise OperationCancelledError("Operation cancelled")


class InFlightGuard:
    """
    Allows a single sync operation at a time.

    A second caller is rejected immediately rather than queued.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.current: str | None = None

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold(self, operation: str) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            logger.info(f"{operation} skipped - {self.current} already in progress")
            raise ConcurrencyError(f"Sync already in progress ({self.current})")
        self.current = operation
        try:
            yield
        finally:
            self.current = None
            self._lock.release()


PROCESS_GUARD = InFlightGuard()
