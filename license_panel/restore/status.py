"""Read-side view of the restore job used by the status and stop endpoints."""

from __future__ import annotations

import logging

from license_panel.restore.models import RestoreSnapshot, StopAck
from license_panel.restore.state import RestoreJobState

logger = logging.getLogger(__name__)


class StatusReporter:
  """Expose restore progress snapshots and accept stop requests."""

  def __init__(self, state: RestoreJobState) -> None:
    self._state = state

  def snapshot(self) -> RestoreSnapshot:
    """Return an immutable copy of the current job counters."""
    return self._state.snapshot()

  def request_stop(self) -> StopAck:
    """Ask the worker to stop at the next item boundary. Idempotent; succeeds even when idle."""
    was_running = self._state.request_stop()
    if was_running:
      logger.info("Restore stop requested; the worker stops before the next license.")
      return StopAck(was_running=True, message="Stop requested")

    return StopAck(was_running=False, message="No restore is running")
