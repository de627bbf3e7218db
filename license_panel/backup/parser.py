"""Parse uploaded backups (JSON exports or tabular console dumps) into license records."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Final, Literal

import msgspec

from license_panel.backup.models import LicenseRecord, LicenseStatus, coerce_level

logger = logging.getLogger(__name__)

BackupFormat = Literal["json", "text"]

_COLUMN_SPLIT: Final = re.compile(r"\s{2,}")
# Header, footer and menu text printed around the key table by the export console.
_NOISE_PHRASES: Final[tuple[str, ...]] = ("license(s):", "MAIN MENU", "Select option")
_HEADER_PREFIX: Final = "Key"
_DEFAULT_STATUS: Final = "Not Used"


@dataclass(frozen=True)
class ParsedBackup:
  """Normalized records recovered from a backup plus the detected source format."""

  licenses: list[LicenseRecord] = field(default_factory=list)
  format: BackupFormat = "text"


def _is_box_drawing(char: str) -> bool:
  # Unicode "Box Drawing" block: ─ │ ┌ └ ├ ═ ...
  return "─" <= char <= "╿"


def _is_noise_line(line: str) -> bool:
  """Return True for borders, column headers, summaries and menu banners."""
  if _is_box_drawing(line[0]):
    return True
  if line.startswith(_HEADER_PREFIX):
    return True
  return any(phrase in line for phrase in _NOISE_PHRASES)


def _records_from_document(document: Any) -> list[LicenseRecord]:
  """Extract license records from a decoded JSON document."""
  entries: Any
  if isinstance(document, dict):
    entries = document.get("licenses") or document.get("keys") or []
  elif isinstance(document, list):
    entries = document
  else:
    entries = []

  if not isinstance(entries, list):
    return []

  records: list[LicenseRecord] = []
  for entry in entries:
    record: LicenseRecord | None = None
    if isinstance(entry, dict):
      record = LicenseRecord.from_mapping(entry)
    elif isinstance(entry, str) and entry.strip():
      # Generation replies list bare key strings.
      record = LicenseRecord(key=entry.strip())
    if record is not None:
      records.append(record)
  return records


def parse_text_lines(lines: Iterable[str], *, key_prefix: str) -> list[LicenseRecord]:
  """Parse a human-readable key table, keeping only rows whose key carries the product prefix."""
  prefix = key_prefix.lower()
  records: list[LicenseRecord] = []

  for raw_line in lines:
    line = raw_line.strip()
    if not line or _is_noise_line(line):
      continue

    columns = _COLUMN_SPLIT.split(line)
    key = columns[0].strip()
    # The prefix check also rejects stray menu text that survived the noise filter.
    if not key.lower().startswith(prefix):
      continue

    status_text = columns[1].strip() if len(columns) >= 2 else _DEFAULT_STATUS
    level_text = columns[2].strip() if len(columns) >= 3 else ""
    level = coerce_level(level_text)
    records.append(LicenseRecord(key=key, status=LicenseStatus.parse(status_text), level=level))

  return records


def parse_backup(content: str, *, key_prefix: str = "Soryn") -> ParsedBackup:
  """Parse backup content, trying JSON first and falling back to the tabular text format.

  Never raises for malformed input; the worst case is an empty record list.
  """
  if not content or not content.strip():
    return ParsedBackup(licenses=[], format="text")

  try:
    document = msgspec.json.decode(content)
  except msgspec.DecodeError:
    logger.debug("Backup content is not JSON; falling back to text parsing")
  else:
    records = _records_from_document(document)
    logger.info("Parsed JSON backup with %d license(s)", len(records))
    return ParsedBackup(licenses=records, format="json")

  records = parse_text_lines(content.splitlines(), key_prefix=key_prefix)
  logger.info("Parsed text backup with %d license(s)", len(records))
  return ParsedBackup(licenses=records, format="text")
