"""License records exchanged between the backup parser, the API and the restore engine."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from license_panel.backup.durations import derive_duration


class LicenseStatus(str, Enum):
  """Usage state of a license key as exported by the upstream service."""

  UNUSED = "unused"
  USED = "used"
  UNKNOWN = "unknown"

  @classmethod
  def parse(cls, raw: Any) -> LicenseStatus:
    """Normalize exported status text ("Not Used", "Used", ...) into a status."""
    if isinstance(raw, LicenseStatus):
      return raw
    if not isinstance(raw, str):
      return cls.UNKNOWN

    # Collapse separators so "Not Used", "not_used" and "unused" all match.
    normalized = "".join(raw.lower().split()).replace("_", "").replace("-", "")
    if normalized in {"notused", "unused"}:
      return cls.UNUSED
    if normalized == "used":
      return cls.USED
    return cls.UNKNOWN


def _is_decimal_text(raw: str) -> bool:
  # str.isdigit() also accepts superscripts such as "²", which int() rejects.
  return raw.isascii() and raw.isdigit()


def coerce_level(raw: Any) -> int:
  """Return a positive access level, defaulting to 1 for anything unusable."""
  if isinstance(raw, bool):
    return 1
  if isinstance(raw, int):
    return raw if raw > 0 else 1
  if isinstance(raw, str) and _is_decimal_text(raw.strip()):
    value = int(raw.strip())
    return value if value > 0 else 1
  return 1


def coerce_duration(raw: Any) -> int | None:
  """Return an explicit positive duration in seconds, or None when it must be derived."""
  if isinstance(raw, bool):
    return None
  if isinstance(raw, int):
    return raw if raw > 0 else None
  if isinstance(raw, str) and _is_decimal_text(raw.strip()):
    value = int(raw.strip())
    return value if value > 0 else None
  return None


@dataclass(frozen=True)
class LicenseRecord:
  """One license key to be listed or re-created upstream."""

  key: str
  status: LicenseStatus = LicenseStatus.UNUSED
  level: int = 1
  duration: int | None = None

  @property
  def resolved_duration(self) -> int:
    """Explicit duration if present, otherwise the duration implied by the key name."""
    return self.duration if self.duration is not None else derive_duration(self.key)

  @classmethod
  def from_mapping(cls, data: Mapping[str, Any]) -> LicenseRecord | None:
    """Build a record from loosely-typed JSON; returns None when no usable key is present."""
    key = data.get("key")
    if not isinstance(key, str) or not key.strip():
      return None

    status = LicenseStatus.parse(data.get("status", "Not Used"))
    return cls(key=key.strip(), status=status, level=coerce_level(data.get("level")), duration=coerce_duration(data.get("duration")))

  def to_dict(self) -> dict[str, Any]:
    return {"key": self.key, "status": self.status.value, "level": self.level, "duration": self.resolved_duration}
