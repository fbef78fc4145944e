"""Tests for RunPoller fixed-interval status polling."""
import threading
from unittest.mock import MagicMock

import pytest

from reportgen.assistant.poller import RunPoller
from reportgen.errors import RunCancelledError, RunFailedError, RunTimeoutError

from fakes import make_run


class FakeClock:
    """Monotonic clock that only moves when the poller sleeps."""

    def __init__(self):
        self.now = 100.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def _retrieve(*statuses):
    return MagicMock(side_effect=[make_run(s) for s in statuses])


class TestRunPoller:
    """Tests for terminal-state handling and query counts."""

    @pytest.mark.parametrize("pending", [0, 1, 4])
    def test_completes_after_n_plus_one_queries(self, pending):
        """N non-terminal observations then completed -> N+1 queries, N pauses of 2s."""
        clock = FakeClock()
        statuses = ["queued"] + ["in_progress"] * (pending - 1) if pending else []
        retrieve = _retrieve(*statuses, "completed")
        poller = RunPoller(retrieve, interval_seconds=2.0, clock=clock, sleep=clock.sleep)

        run = poller.wait("thread_1", "run_1")

        assert run.status == "completed"
        assert retrieve.call_count == pending + 1
        assert clock.sleeps == [2.0] * pending
        retrieve.assert_called_with("thread_1", "run_1")

    def test_failed_on_first_query_stops_immediately(self):
        """A failed run is reported after a single query and no pause."""
        clock = FakeClock()
        retrieve = MagicMock(return_value=make_run("failed", message="rate limited"))
        poller = RunPoller(retrieve, clock=clock, sleep=clock.sleep)

        with pytest.raises(RunFailedError) as exc_info:
            poller.wait("thread_1", "run_1")

        assert retrieve.call_count == 1
        assert clock.sleeps == []
        assert exc_info.value.status == "failed"
        assert exc_info.value.detail == "rate limited"
        assert exc_info.value.kind == "run_failed"

    @pytest.mark.parametrize("status", ["cancelled", "expired", "incomplete", "requires_action"])
    def test_other_terminal_statuses_are_failures(self, status):
        clock = FakeClock()
        poller = RunPoller(_retrieve("queued", status), clock=clock, sleep=clock.sleep)

        with pytest.raises(RunFailedError) as exc_info:
            poller.wait("thread_1", "run_1")

        assert exc_info.value.status == status

    def test_max_attempts_bounds_polling(self):
        """A run stuck in progress is abandoned after max_attempts queries."""
        clock = FakeClock()
        retrieve = MagicMock(return_value=make_run("in_progress"))
        cancel = MagicMock()
        poller = RunPoller(
            retrieve, interval_seconds=2.0, max_attempts=3,
            clock=clock, sleep=clock.sleep, cancel=cancel,
        )

        with pytest.raises(RunTimeoutError) as exc_info:
            poller.wait("thread_1", "run_1")

        assert retrieve.call_count == 3
        assert exc_info.value.attempts == 3
        cancel.assert_called_once_with("thread_1", "run_1")

    def test_deadline_bounds_polling(self):
        """The wall-clock budget stops polling before it would be overrun."""
        clock = FakeClock()
        retrieve = MagicMock(return_value=make_run("in_progress"))
        poller = RunPoller(
            retrieve, interval_seconds=2.0, timeout_seconds=5.0,
            clock=clock, sleep=clock.sleep,
        )

        with pytest.raises(RunTimeoutError):
            poller.wait("thread_1", "run_1")

        # queries at t=0, 2, 4; a fourth at t=6 would pass the 5s budget
        assert retrieve.call_count == 3
        assert sum(clock.sleeps) <= 5.0

    def test_cancel_event_stops_before_next_query(self):
        """Setting the cancel event during a pause abandons the run."""
        cancel_event = threading.Event()
        retrieve = MagicMock(return_value=make_run("in_progress"))
        cancel = MagicMock()
        poller = RunPoller(
            retrieve, sleep=lambda _: cancel_event.set(), cancel=cancel,
        )

        with pytest.raises(RunCancelledError):
            poller.wait("thread_1", "run_1", cancel_event=cancel_event)

        assert retrieve.call_count == 1
        cancel.assert_called_once_with("thread_1", "run_1")

    def test_pause_waits_on_cancel_event(self):
        """Without an injected sleep the pause wakes as soon as the event is set."""
        cancel_event = threading.Event()
        cancel_event.set()
        poller = RunPoller(MagicMock(), interval_seconds=30.0)

        # Returns immediately; a real 30s sleep would hang the test
        poller._pause(cancel_event)

    def test_cancel_failure_does_not_mask_timeout(self):
        from reportgen.errors import AssistantCallError

        clock = FakeClock()
        cancel = MagicMock(side_effect=AssistantCallError("runs.cancel", Exception("gone")))
        poller = RunPoller(
            MagicMock(return_value=make_run("queued")), max_attempts=1,
            clock=clock, sleep=clock.sleep, cancel=cancel,
        )

        with pytest.raises(RunTimeoutError):
            poller.wait("thread_1", "run_1")
