"""Duration classification derived from markers embedded in license key names."""

from __future__ import annotations

from typing import Final

# Expiry sent upstream for keys that never expire.
UNLIMITED_SECONDS: Final[int] = 999_999_999

SECONDS_PER_DAY: Final[int] = 86_400

# Ordered: the first matching marker wins, so "lifetime" beats any period marker.
_DURATION_MARKERS: Final[tuple[tuple[tuple[str, ...], int], ...]] = (
  (("lifetime",), UNLIMITED_SECONDS),
  (("1month", "-1m"), 30 * SECONDS_PER_DAY),
  (("1week", "-1w"), 7 * SECONDS_PER_DAY),
  (("1day", "-1d"), SECONDS_PER_DAY),
  (("1year", "-1y"), 365 * SECONDS_PER_DAY),
)


def derive_duration(key: str) -> int:
  """Return the duration in seconds implied by a key name, or the unlimited sentinel."""
  lowered = key.lower()
  for markers, seconds in _DURATION_MARKERS:
    if any(marker in lowered for marker in markers):
      return seconds
  return UNLIMITED_SECONDS
