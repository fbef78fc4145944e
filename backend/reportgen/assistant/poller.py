"""Run status polling.

RunPoller re-queries a run on a fixed interval until it reaches a terminal
status. The clock and the sleep are injectable so tests can drive it
without waiting, and a threading.Event lets the HTTP layer abandon a run
when the caller disconnects.
"""
import logging
import threading
import time
from typing import Any, Callable, Optional

from reportgen.errors import (
    AssistantCallError,
    RunCancelledError,
    RunFailedError,
    RunTimeoutError,
)

logger = logging.getLogger(__name__)

SUCCESS_STATUS = "completed"

# Terminal statuses that are not a success. requires_action is included
# because this service never submits tool outputs.
FAILURE_STATUSES = frozenset(
    {"failed", "cancelled", "cancelling", "expired", "incomplete", "requires_action"}
)


class RunPoller:
    """Fixed-interval status polling with attempt and wall-clock bounds.

    Args:
        retrieve: Callable ``(thread_id, run_id) -> run`` returning an
            object with ``status`` (and optionally ``last_error``).
        interval_seconds: Pause between two status queries.
        max_attempts: Maximum number of status queries.
        timeout_seconds: Wall-clock budget measured from the first query.
        clock: Monotonic time source.
        sleep: Pause function. When omitted, pauses wait on the cancel
            event so a disconnect wakes the poller early.
        cancel: Optional callable ``(thread_id, run_id)`` used to cancel
            the remote run on timeout or disconnect.
    """

    def __init__(
        self,
        retrieve: Callable[[str, str], Any],
        interval_seconds: float = 2.0,
        max_attempts: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], None]] = None,
        cancel: Optional[Callable[[str, str], None]] = None,
    ) -> None:
        self.retrieve = retrieve
        self.interval_seconds = interval_seconds
        self.max_attempts = max_attempts
        self.timeout_seconds = timeout_seconds
        self.clock = clock
        self.sleep = sleep
        self.cancel = cancel

    def _pause(self, cancel_event: Optional[threading.Event]) -> None:
        if self.sleep is not None:
            self.sleep(self.interval_seconds)
        elif cancel_event is not None:
            cancel_event.wait(self.interval_seconds)
        else:
            time.sleep(self.interval_seconds)

    def _abandon(self, thread_id: str, run_id: str) -> None:
        if self.cancel is None:
            return
        try:
            self.cancel(thread_id, run_id)
            logger.info(f"Cancelled run {run_id}")
        except AssistantCallError as e:
            logger.warning(f"Could not cancel run {run_id}: {e}")

    def wait(
        self,
        thread_id: str,
        run_id: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Any:
        """Poll until the run completes.

        Returns:
            The run object that reported ``completed``.

        Raises:
            RunFailedError: On the first non-success terminal status.
            RunTimeoutError: When attempts or time run out.
            RunCancelledError: When ``cancel_event`` gets set.
        """
        started = self.clock()
        attempts = 0

        while True:
            if cancel_event is not None and cancel_event.is_set():
                self._abandon(thread_id, run_id)
                raise RunCancelledError(run_id)

            run = self.retrieve(thread_id, run_id)
            attempts += 1
            status = getattr(run, "status", None)
            logger.debug(f"Run {run_id} status={status} (check {attempts})")

            if status == SUCCESS_STATUS:
                logger.info(f"Run {run_id} completed after {attempts} status checks")
                return run
            if status in FAILURE_STATUSES:
                last_error = getattr(run, "last_error", None)
                detail = getattr(last_error, "message", None) if last_error else None
                logger.error(f"Run {run_id} ended with status {status}: {detail}")
                raise RunFailedError(run_id, status, detail)

            elapsed = self.clock() - started
            out_of_attempts = self.max_attempts is not None and attempts >= self.max_attempts
            out_of_time = (
                self.timeout_seconds is not None
                and elapsed + self.interval_seconds > self.timeout_seconds
            )
            if out_of_attempts or out_of_time:
                logger.error(f"Run {run_id} still {status} after {attempts} checks ({elapsed:.1f}s)")
                self._abandon(thread_id, run_id)
                raise RunTimeoutError(run_id, attempts, elapsed)

            self._pause(cancel_event)
