"""Domain models for the bulk restore job."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final

STOPPED_BY_USER: Final = "Stopped by user"
RESTORE_INTERRUPTED: Final = "Restore interrupted"
COMPLETE_MARKER: Final = "Complete"


class RestorePhase(str, Enum):
  """Lifecycle state of the restore job."""

  IDLE = "idle"
  RUNNING = "running"
  COMPLETED = "completed"
  CANCELLED = "cancelled"
  FAILED = "failed"


class ItemOutcome(str, Enum):
  """Final classification of one license re-creation attempt."""

  SUCCEEDED = "succeeded"
  SKIPPED = "skipped"
  FAILED = "failed"


@dataclass(frozen=True)
class RestoreSnapshot:
  """Point-in-time copy of the restore job counters."""

  state: RestorePhase
  running: bool
  total: int
  processed: int
  succeeded: int
  skipped: int
  failed: int
  current_key: str
  terminal_error: str | None
  started_at: str | None
  finished_at: str | None


@dataclass(frozen=True)
class RestoreAck:
  """Acknowledgement returned once a restore has been accepted."""

  total: int
  wipe_first: bool


@dataclass(frozen=True)
class StopAck:
  """Acknowledgement for a stop request."""

  was_running: bool
  message: str
