"""Lock-guarded restore job state shared by the worker and status readers."""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock

from license_panel.core.errors import AlreadyInProgressError
from license_panel.restore.models import COMPLETE_MARKER, ItemOutcome, RestorePhase, RestoreSnapshot

_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def _utc_timestamp() -> str:
  return time.strftime(_DATE_FORMAT, time.gmtime())


@dataclass
class _RestoreJob:
  state: RestorePhase = RestorePhase.IDLE
  running: bool = False
  total: int = 0
  processed: int = 0
  succeeded: int = 0
  skipped: int = 0
  failed: int = 0
  current_key: str = ""
  terminal_error: str | None = None
  started_at: str | None = None
  finished_at: str | None = None


class RestoreJobState:
  """Holds the single restore job and the cooperative stop flag.

  Only the restore worker mutates counters; readers take snapshots. The lock prevents torn
  writes but does not make a snapshot consistent with the next worker update.
  """

  def __init__(self) -> None:
    self._lock = Lock()
    self._job = _RestoreJob()
    self._stop_requested = False

  def begin(self, total: int) -> None:
    """Reset the job for a new run; raises AlreadyInProgressError without touching state if one is running."""
    with self._lock:
      if self._job.running:
        raise AlreadyInProgressError("A restore is already in progress.")
      self._job = _RestoreJob(state=RestorePhase.RUNNING, running=True, total=total, started_at=_utc_timestamp())
      self._stop_requested = False

  def begin_item(self, key: str) -> None:
    """Mark the next item as in flight; processed is counted before the upstream attempt."""
    with self._lock:
      self._job.current_key = key
      self._job.processed = min(self._job.processed + 1, self._job.total)

  def set_current_key(self, label: str) -> None:
    with self._lock:
      self._job.current_key = label

  def record_outcome(self, outcome: ItemOutcome) -> None:
    with self._lock:
      if outcome is ItemOutcome.SUCCEEDED:
        self._job.succeeded += 1
      elif outcome is ItemOutcome.SKIPPED:
        self._job.skipped += 1
      else:
        self._job.failed += 1

  def finish(self, phase: RestorePhase, *, terminal_error: str | None = None) -> None:
    """Record a terminal phase; the first terminal phase wins."""
    with self._lock:
      if not self._job.running:
        return
      self._job.state = phase
      self._job.running = False
      self._job.terminal_error = terminal_error
      self._job.finished_at = _utc_timestamp()
      if phase is RestorePhase.COMPLETED:
        self._job.current_key = COMPLETE_MARKER

  def request_stop(self) -> bool:
    """Set the stop flag and report whether a job was running when it was set."""
    with self._lock:
      self._stop_requested = True
      return self._job.running

  @property
  def stop_requested(self) -> bool:
    with self._lock:
      return self._stop_requested

  @property
  def running(self) -> bool:
    with self._lock:
      return self._job.running

  def snapshot(self) -> RestoreSnapshot:
    with self._lock:
      job = self._job
      return RestoreSnapshot(
        state=job.state,
        running=job.running,
        total=job.total,
        processed=job.processed,
        succeeded=job.succeeded,
        skipped=job.skipped,
        failed=job.failed,
        current_key=job.current_key,
        terminal_error=job.terminal_error,
        started_at=job.started_at,
        finished_at=job.finished_at,
      )
