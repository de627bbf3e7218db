"""Classification of upstream failure messages for the restore retry policy.

The seller API reports every failure as free text, so the restore worker has to guess from the
message whether a failed `add` is worth retrying. All of that guessing lives here:

- DUPLICATE: the key is already present upstream. Re-creating it can never succeed and is not an
  error for a restore, so the item is counted as skipped.
- RATE_LIMITED: upstream throttled the call. The worker backs off and retries.
- TERMINAL: anything else. Retrying would only burn attempts, so the item is counted as failed.

Duplicate markers are checked first so a message such as "Key already exists, slow down" is never
retried.
"""

from __future__ import annotations

from enum import Enum
from typing import Final

_DUPLICATE_MARKERS: Final[tuple[str, ...]] = ("already", "exists", "duplicate")
_RATE_LIMIT_MARKERS: Final[tuple[str, ...]] = ("rate", "limit", "slow", "too many")


class RejectionKind(str, Enum):
  """How the restore worker treats a failure reply."""

  DUPLICATE = "duplicate"
  RATE_LIMITED = "rate_limited"
  TERMINAL = "terminal"


def classify_rejection(message: str | None) -> RejectionKind:
  """Classify a failure reply message (case-insensitive substring heuristic)."""
  if not message:
    return RejectionKind.TERMINAL

  lowered = message.lower()
  if any(marker in lowered for marker in _DUPLICATE_MARKERS):
    return RejectionKind.DUPLICATE
  if any(marker in lowered for marker in _RATE_LIMIT_MARKERS):
    return RejectionKind.RATE_LIMITED
  return RejectionKind.TERMINAL
