from __future__ import annotations

from typing import Any

import msgspec
from pydantic import BaseModel, ConfigDict, Field, StrictStr

from license_panel.backup.durations import UNLIMITED_SECONDS


class ActionResponse(BaseModel):
  """Outcome of a single upstream action."""

  success: bool
  message: str | None = None


class LicenseListResponse(BaseModel):
  success: bool = True
  licenses: list[Any]


class UserListResponse(BaseModel):
  success: bool = True
  users: list[Any]


class GenerateLicensesRequest(BaseModel):
  """Request payload for generating new license keys from a mask."""

  amount: int = Field(default=1, ge=1, le=1000, description="Number of keys to generate.")
  duration: int = Field(default=UNLIMITED_SECONDS, ge=1, description="Key lifetime in seconds.")
  level: int = Field(default=1, ge=1, description="Access level assigned to the keys.")
  mask: StrictStr | None = Field(default=None, min_length=1, max_length=128, description="Key mask; defaults to the configured product mask.", examples=["Soryn-XXXXX-XXXXX"])
  model_config = ConfigDict(extra="forbid")


class GenerateLicensesResponse(BaseModel):
  success: bool = True
  keys: list[str]


class LicenseKeyRequest(BaseModel):
  """Request payload naming one license key."""

  key: StrictStr = Field(min_length=1, max_length=256)
  model_config = ConfigDict(extra="forbid")


class BanLicenseRequest(LicenseKeyRequest):
  reason: StrictStr = Field(default="", max_length=256)


class UsernameRequest(BaseModel):
  """Request payload naming one upstream user."""

  username: StrictStr = Field(min_length=1, max_length=256)
  model_config = ConfigDict(extra="forbid")


class HealthResponse(BaseModel):
  status: str
  connected: bool


# msgspec payloads for the backup and restore routes; backup bodies can be large.


class LicensePayload(msgspec.Struct):
  """License record as exchanged with the admin UI."""

  key: str
  status: str
  level: int
  duration: int


class ParseBackupRequest(msgspec.Struct):
  content: str


class ParseBackupResponse(msgspec.Struct):
  licenses: list[LicensePayload]
  format: str
  success: bool = True


class BackupPayload(msgspec.Struct):
  export_date: str
  app_name: str
  licenses: list[Any]
  users: list[Any]


class BackupResponse(msgspec.Struct):
  backup: BackupPayload
  success: bool = True


class RestoreRequest(msgspec.Struct, forbid_unknown_fields=True):
  """Restore request; `licenses` is validated by the restore engine so bad input maps to one error."""

  licenses: Any = None
  # The admin UI sends the flag as `wipeFirst`.
  wipe_first: bool = msgspec.field(default=False, name="wipeFirst")


class RestoreStartResponse(msgspec.Struct):
  total: int
  message: str
  success: bool = True


class RestoreStatusResponse(msgspec.Struct):
  state: str
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


class RestoreStopResponse(msgspec.Struct):
  message: str
  was_running: bool
  success: bool = True
