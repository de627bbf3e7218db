"""Background engine that re-creates license keys upstream, one at a time."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from license_panel.backup.models import LicenseRecord
from license_panel.config import RestoreTimings
from license_panel.core.errors import DecodeError, InvalidInputError, TransportError, UpstreamError
from license_panel.restore.classification import RejectionKind, classify_rejection
from license_panel.restore.models import RESTORE_INTERRUPTED, STOPPED_BY_USER, ItemOutcome, RestoreAck, RestorePhase
from license_panel.restore.state import RestoreJobState
from license_panel.upstream.client import UpstreamInvoker, UpstreamOperation

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def normalize_restore_input(entries: Any) -> list[LicenseRecord]:
  """Validate a restore request body and convert it into license records.

  Raises InvalidInputError when the input is not a non-empty list or any entry lacks a key.
  """
  if not isinstance(entries, list | tuple):
    raise InvalidInputError("Invalid licenses data: expected a list of licenses.")
  if not entries:
    raise InvalidInputError("Invalid licenses data: the license list is empty.")

  records: list[LicenseRecord] = []
  for position, entry in enumerate(entries):
    record: LicenseRecord | None = None
    if isinstance(entry, LicenseRecord):
      record = entry if entry.key else None
    elif isinstance(entry, Mapping):
      record = LicenseRecord.from_mapping(entry)
    if record is None:
      raise InvalidInputError(f"Invalid licenses data: entry {position} has no key.")
    records.append(record)
  return records


class RestoreEngine:
  """Run a single restore job at a time as a detached asyncio task.

  Upstream calls are strictly sequential and paced by RestoreTimings because the upstream rate
  limits are unknown. Every outcome is folded into the shared RestoreJobState; nothing raised
  inside the worker reaches the caller of start().
  """

  def __init__(self, *, client: UpstreamInvoker, state: RestoreJobState, timings: RestoreTimings | None = None, sleep: Sleep = asyncio.sleep) -> None:
    self._client = client
    self._state = state
    self._timings = timings or RestoreTimings()
    self._sleep = sleep
    self._task: asyncio.Task[None] | None = None

  def start(self, entries: Any, *, wipe_first: bool = False) -> RestoreAck:
    """Validate input, reset the job and spawn the worker without waiting for it."""
    records = normalize_restore_input(entries)
    # Resolve the loop before touching state so a missing loop cannot leave the job marked running.
    loop = asyncio.get_running_loop()
    self._state.begin(len(records))
    logger.info("Restore accepted total=%d wipe_first=%s", len(records), wipe_first)
    self._task = loop.create_task(self._run(records, wipe_first), name="license-restore")
    return RestoreAck(total=len(records), wipe_first=wipe_first)

  async def join(self) -> None:
    """Wait for the current worker, if any, to finish."""
    task = self._task
    if task is not None and not task.done():
      await asyncio.wait({task})

  async def shutdown(self) -> None:
    """Cancel the current worker during application shutdown."""
    task = self._task
    if task is None or task.done():
      return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
      await task
    # A task cancelled before its first step never reaches its own cleanup.
    self._state.finish(RestorePhase.FAILED, terminal_error=RESTORE_INTERRUPTED)

  async def _run(self, records: Sequence[LicenseRecord], wipe_first: bool) -> None:
    total = len(records)
    try:
      if wipe_first:
        await self._wipe()

      for index, record in enumerate(records, start=1):
        if self._state.stop_requested:
          logger.info("Restore stopped by user after %d of %d license(s)", index - 1, total)
          self._state.finish(RestorePhase.CANCELLED, terminal_error=STOPPED_BY_USER)
          return

        outcome = await self._restore_item(record)
        self._state.record_outcome(outcome)

        # Pace every item, then add a longer pause after each full batch.
        await self._sleep(self._timings.item_delay_seconds)
        if index % self._timings.batch_size == 0:
          logger.info("Restore progress %d/%d; pausing %.1fs", index, total, self._timings.batch_pause_seconds)
          await self._sleep(self._timings.batch_pause_seconds)

      self._state.finish(RestorePhase.COMPLETED)
      snapshot = self._state.snapshot()
      logger.info("Restore complete total=%d succeeded=%d skipped=%d failed=%d", snapshot.total, snapshot.succeeded, snapshot.skipped, snapshot.failed)

    except asyncio.CancelledError:
      self._state.finish(RestorePhase.FAILED, terminal_error=RESTORE_INTERRUPTED)
      raise

    except Exception as exc:  # noqa: BLE001
      logger.error("Restore worker failed error_type=%s", type(exc).__name__, exc_info=True)
      self._state.finish(RestorePhase.FAILED, terminal_error=str(exc) or type(exc).__name__)

    finally:
      # A job left running would block every later restore.
      self._state.finish(RestorePhase.FAILED, terminal_error=RESTORE_INTERRUPTED)

  async def _wipe(self) -> None:
    """Best-effort deletion of all licenses and users before re-creating keys."""
    for operation, label in ((UpstreamOperation.DELETE_ALL_KEYS, "licenses"), (UpstreamOperation.DELETE_ALL_USERS, "users")):
      self._state.set_current_key(f"Wiping {label}")
      try:
        result = await self._client.invoke(operation)
      except UpstreamError as exc:
        logger.warning("Pre-restore wipe of %s failed: %s", label, exc)
      else:
        if not result.success:
          logger.warning("Pre-restore wipe of %s rejected: %s", label, result.message)
      await self._sleep(self._timings.wipe_pause_seconds)
    self._state.set_current_key("")

  async def _restore_item(self, record: LicenseRecord) -> ItemOutcome:
    """Re-create one key with bounded retries for throttling and transport failures."""
    duration = record.resolved_duration
    self._state.begin_item(record.key)
    parameters = {"key": record.key, "expiry": str(duration), "level": str(record.level)}
    max_attempts = self._timings.max_attempts

    for attempt in range(1, max_attempts + 1):
      has_retry = attempt < max_attempts
      try:
        result = await self._client.invoke(UpstreamOperation.ADD_KEY, parameters)
      except (TransportError, DecodeError) as exc:
        logger.warning("Restore of %s attempt %d/%d failed: %s", record.key, attempt, max_attempts, exc)
        if has_retry:
          await self._sleep(self._timings.transport_backoff_seconds)
          continue
        return ItemOutcome.FAILED

      if result.success:
        return ItemOutcome.SUCCEEDED

      kind = classify_rejection(result.message)
      if kind is RejectionKind.DUPLICATE:
        logger.debug("Restore of %s skipped: %s", record.key, result.message)
        return ItemOutcome.SKIPPED

      if kind is RejectionKind.RATE_LIMITED and has_retry:
        logger.warning("Restore of %s rate limited (attempt %d/%d); retrying in %.1fs", record.key, attempt, max_attempts, self._timings.rate_limit_backoff_seconds)
        await self._sleep(self._timings.rate_limit_backoff_seconds)
        continue

      logger.warning("Restore of %s rejected: %s", record.key, result.message)
      return ItemOutcome.FAILED

    return ItemOutcome.FAILED
