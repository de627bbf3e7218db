"""Single-call proxy operations against the seller API."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Final, Literal

from license_panel.upstream.client import UpstreamInvoker, UpstreamOperation, UpstreamResult

logger = logging.getLogger(__name__)

WipeScope = Literal["licenses", "unused", "used", "users", "full"]

_WIPE_OPERATIONS: Final[dict[str, tuple[UpstreamOperation, ...]]] = {
  "licenses": (UpstreamOperation.DELETE_ALL_KEYS,),
  "unused": (UpstreamOperation.DELETE_UNUSED_KEYS,),
  "used": (UpstreamOperation.DELETE_USED_KEYS,),
  "users": (UpstreamOperation.DELETE_ALL_USERS,),
  "full": (UpstreamOperation.DELETE_ALL_KEYS, UpstreamOperation.DELETE_ALL_USERS),
}
_EXPORT_DATE_FORMAT: Final = "%Y-%m-%dT%H:%M:%SZ"


@dataclass(frozen=True)
class BackupDocument:
  """Full export of upstream licenses and users."""

  export_date: str
  app_name: str
  licenses: list[Any]
  users: list[Any]


def _list_field(result: UpstreamResult, field_name: str) -> list[Any]:
  value = result.payload.get(field_name)
  return value if isinstance(value, list) else []


async def list_licenses(client: UpstreamInvoker) -> list[Any]:
  """Return every license known upstream."""
  result = await client.invoke(UpstreamOperation.FETCH_ALL_KEYS)
  return _list_field(result.raise_for_rejection(), "keys")


async def list_users(client: UpstreamInvoker) -> list[Any]:
  """Return every user known upstream."""
  result = await client.invoke(UpstreamOperation.FETCH_ALL_USERS)
  return _list_field(result.raise_for_rejection(), "users")


async def generate_licenses(client: UpstreamInvoker, *, amount: int, duration: int, level: int, mask: str, owner: str) -> list[str]:
  """Create new keys from a mask and return the generated key strings."""
  parameters = {"expiry": str(duration), "mask": mask, "level": str(level), "amount": str(amount), "owner": owner}
  result = (await client.invoke(UpstreamOperation.ADD_KEY, parameters)).raise_for_rejection()

  # Bulk generation answers with `keys`; single generation with `key`.
  keys = _list_field(result, "keys")
  if not keys and isinstance(result.payload.get("key"), str):
    keys = [result.payload["key"]]
  logger.info("Generated %d license(s) level=%d", len(keys), level)
  return keys


async def wipe(client: UpstreamInvoker, scope: WipeScope) -> UpstreamResult:
  """Bulk-delete licenses and/or users; the full wipe stops at the first failure."""
  operations = _WIPE_OPERATIONS.get(scope)
  if operations is None:
    raise ValueError(f"Unknown wipe scope '{scope}'.")

  result = UpstreamResult(success=False)
  for operation in operations:
    result = await client.invoke(operation)
    logger.info("Wipe scope=%s operation=%s success=%s", scope, operation.value, result.success)
    if not result.success:
      return result

  if scope == "full":
    return UpstreamResult(success=True, message="Full wipe complete", payload=result.payload)
  return result


async def ban_license(client: UpstreamInvoker, key: str, reason: str = "") -> UpstreamResult:
  """Ban a license and the user that redeemed it (users are named after their key)."""
  result = await client.invoke(UpstreamOperation.BAN_KEY, {"key": key, "reason": reason})
  await client.invoke(UpstreamOperation.BAN_USER, {"user": key, "reason": reason})
  return result


async def unban_license(client: UpstreamInvoker, key: str) -> UpstreamResult:
  """Lift a license ban and the matching user ban."""
  result = await client.invoke(UpstreamOperation.UNBAN_KEY, {"key": key})
  await client.invoke(UpstreamOperation.UNBAN_USER, {"user": key})
  return result


async def delete_license(client: UpstreamInvoker, key: str) -> UpstreamResult:
  return await client.invoke(UpstreamOperation.DELETE_KEY, {"key": key})


async def reset_hwid(client: UpstreamInvoker, username: str) -> UpstreamResult:
  return await client.invoke(UpstreamOperation.RESET_HWID, {"user": username})


async def delete_user(client: UpstreamInvoker, username: str) -> UpstreamResult:
  return await client.invoke(UpstreamOperation.DELETE_USER, {"user": username})


async def export_backup(client: UpstreamInvoker, *, app_name: str) -> BackupDocument:
  """Fetch licenses and users concurrently and bundle them as a backup document."""
  keys_result, users_result = await asyncio.gather(client.invoke(UpstreamOperation.FETCH_ALL_KEYS), client.invoke(UpstreamOperation.FETCH_ALL_USERS))

  licenses = _list_field(keys_result, "keys")
  users = _list_field(users_result, "users")
  logger.info("Exported backup with %d license(s) and %d user(s)", len(licenses), len(users))
  return BackupDocument(export_date=time.strftime(_EXPORT_DATE_FORMAT, time.gmtime()), app_name=app_name, licenses=licenses, users=users)
