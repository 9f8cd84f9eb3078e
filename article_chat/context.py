"""
Request Context

A request-scoped cancellation token. Pipeline stages call check() before each
downstream call so a cancelled or expired request stops doing work, and run
provider calls through run_with_deadline() so a call still in flight when the
deadline passes is abandoned instead of delaying the answer.
"""

import threading
import time
from typing import Any, Callable, Dict, Optional, TypeVar

from .errors import RequestCancelledError

T = TypeVar('T')

# How often a waiting caller re-checks the cancellation flag
POLL_INTERVAL = 0.05


class RequestContext:
    """
    Deadline plus cancellation flag for one request.

    Args:
        timeout: Seconds until the deadline, or None for no deadline
    """

    def __init__(self, timeout: Optional[float] = None):
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._cancelled = threading.Event()

    def cancel(self):
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline (never negative), None if unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def _stop_if_needed(self, where: str):
        if self.cancelled:
            raise RequestCancelledError(f"request cancelled{where}")
        if self.expired:
            raise RequestCancelledError(f"request deadline exceeded{where}")

    def check(self, stage: str = ""):
        """
        Raise if the request should stop.

        Args:
            stage: Name of the step about to run, included in the error

        Raises:
            RequestCancelledError: If cancelled or past the deadline
        """
        self._stop_if_needed(f" before {stage}" if stage else "")

    def run(self, func: Callable[[Optional[float]], T], stage: str = "") -> T:
        """
        Run a downstream call bounded by this request's deadline.

        The call receives the seconds left (None if unbounded) so it can cap
        its own transport timeout. It runs on a worker thread; if the deadline
        passes or the request is cancelled first, the request is marked
        cancelled and the caller gets RequestCancelledError without waiting
        for the call to finish.

        Args:
            func: Callable taking the remaining time in seconds
            stage: Name of the call, included in errors

        Returns:
            Whatever func returns

        Raises:
            RequestCancelledError: If stopped before, during or right after the call
            Exception: Whatever func raises
        """
        self.check(stage)
        during = f" during {stage}" if stage else ""
        outcome: Dict[str, Any] = {}
        finished = threading.Event()

        def worker():
            try:
                outcome['value'] = func(self.remaining())
            except Exception as e:
                outcome['error'] = e
            finally:
                finished.set()

        threading.Thread(target=worker, name=f"request-{stage or 'call'}", daemon=True).start()

        while not finished.is_set():
            if self.expired:
                self.cancel()
                raise RequestCancelledError(f"request deadline exceeded{during}")
            if self.cancelled:
                raise RequestCancelledError(f"request cancelled{during}")
            remaining = self.remaining()
            wait = POLL_INTERVAL if remaining is None else min(POLL_INTERVAL, remaining)
            finished.wait(wait)

        if 'error' in outcome:
            raise outcome['error']
        # A result that arrives after the deadline is discarded
        self._stop_if_needed(during)
        return outcome['value']


def check_context(ctx: Optional[RequestContext], stage: str = ""):
    """check() that tolerates a missing context."""
    if ctx is not None:
        ctx.check(stage)


def run_with_deadline(
    ctx: Optional[RequestContext],
    func: Callable[[Optional[float]], T],
    stage: str = ""
) -> T:
    """run() that tolerates a missing context; without one func runs inline with no limit."""
    if ctx is None:
        return func(None)
    return ctx.run(func, stage)
