from __future__ import annotations

import pytest

from license_panel.core.errors import AlreadyInProgressError
from license_panel.restore.models import COMPLETE_MARKER, STOPPED_BY_USER, ItemOutcome, RestorePhase
from license_panel.restore.state import RestoreJobState
from license_panel.restore.status import StatusReporter


def test_initial_snapshot_is_idle() -> None:
  snapshot = RestoreJobState().snapshot()
  assert snapshot.state is RestorePhase.IDLE
  assert snapshot.running is False
  assert (snapshot.total, snapshot.processed, snapshot.succeeded, snapshot.skipped, snapshot.failed) == (0, 0, 0, 0, 0)
  assert snapshot.current_key == ""
  assert snapshot.started_at is None


def test_begin_rejects_second_job_without_touching_counters() -> None:
  state = RestoreJobState()
  state.begin(5)
  state.begin_item("Soryn-A")
  state.record_outcome(ItemOutcome.SUCCEEDED)

  with pytest.raises(AlreadyInProgressError):
    state.begin(10)

  snapshot = state.snapshot()
  assert snapshot.total == 5
  assert snapshot.processed == 1
  assert snapshot.succeeded == 1


def test_begin_resets_previous_counters() -> None:
  state = RestoreJobState()
  state.begin(2)
  state.begin_item("Soryn-A")
  state.record_outcome(ItemOutcome.FAILED)
  state.finish(RestorePhase.COMPLETED)

  state.begin(3)
  snapshot = state.snapshot()
  assert snapshot.state is RestorePhase.RUNNING
  assert snapshot.total == 3
  assert (snapshot.processed, snapshot.failed) == (0, 0)
  assert snapshot.terminal_error is None
  assert snapshot.finished_at is None


def test_processed_never_exceeds_total() -> None:
  state = RestoreJobState()
  state.begin(1)
  state.begin_item("Soryn-A")
  state.begin_item("Soryn-A")
  assert state.snapshot().processed == 1


def test_outcomes_are_tallied_separately() -> None:
  state = RestoreJobState()
  state.begin(3)
  for outcome in (ItemOutcome.SUCCEEDED, ItemOutcome.SKIPPED, ItemOutcome.FAILED):
    state.record_outcome(outcome)
  snapshot = state.snapshot()
  assert (snapshot.succeeded, snapshot.skipped, snapshot.failed) == (1, 1, 1)


def test_first_terminal_phase_wins() -> None:
  state = RestoreJobState()
  state.begin(1)
  state.finish(RestorePhase.CANCELLED, terminal_error=STOPPED_BY_USER)
  state.finish(RestorePhase.FAILED, terminal_error="late")

  snapshot = state.snapshot()
  assert snapshot.state is RestorePhase.CANCELLED
  assert snapshot.terminal_error == STOPPED_BY_USER
  assert snapshot.running is False
  assert snapshot.finished_at is not None


def test_completed_sets_complete_marker() -> None:
  state = RestoreJobState()
  state.begin(1)
  state.begin_item("Soryn-A")
  state.finish(RestorePhase.COMPLETED)
  assert state.snapshot().current_key == COMPLETE_MARKER


def test_stop_flag_is_cleared_by_begin() -> None:
  state = RestoreJobState()
  assert state.request_stop() is False
  assert state.stop_requested is True

  state.begin(1)
  assert state.stop_requested is False
  assert state.request_stop() is True
  assert state.stop_requested is True


def test_status_reporter_stop_acknowledgements() -> None:
  state = RestoreJobState()
  reporter = StatusReporter(state)

  idle_ack = reporter.request_stop()
  assert idle_ack.was_running is False
  assert idle_ack.message == "No restore is running"

  state.begin(2)
  running_ack = reporter.request_stop()
  assert running_ack.was_running is True
  assert running_ack.message == "Stop requested"
  # Repeated stop requests are harmless.
  assert reporter.request_stop().was_running is True
  assert reporter.snapshot().running is True
