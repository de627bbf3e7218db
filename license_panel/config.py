"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from license_panel.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

DEFAULT_UPSTREAM_URL = "https://keyauth.win/api/seller/"
DEFAULT_ALLOWED_ORIGINS = "http://localhost:3000"


@dataclass(frozen=True)
class RestoreTimings:
  """Pacing and retry limits applied by the restore worker."""

  item_delay_seconds: float = 1.5
  batch_size: int = 20
  batch_pause_seconds: float = 5.0
  rate_limit_backoff_seconds: float = 10.0
  transport_backoff_seconds: float = 5.0
  max_attempts: int = 3
  wipe_pause_seconds: float = 2.0


@dataclass(frozen=True)
class Settings:
  """Typed settings for the license panel service."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  log_dir: str
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  log_http_bodies: bool
  log_http_body_bytes: int
  upstream_url: str
  upstream_timeout_seconds: float
  seller_key: str | None
  config_backend_url: str | None
  app_name: str
  app_version: str
  app_secret_salt: str | None
  app_build_date: str | None
  key_prefix: str
  default_mask: str
  restore: RestoreTimings


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  origins = [origin.strip() for origin in (raw or DEFAULT_ALLOWED_ORIGINS).split(",") if origin.strip()]

  if not origins:
    raise ValueError("PANEL_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("PANEL_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _non_negative_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value < 0:
    raise ValueError(f"{name} must be zero or a positive number.")
  return value


def _load_restore_timings() -> RestoreTimings:
  """Read restore pacing from the environment, falling back to conservative defaults."""

  return RestoreTimings(
    item_delay_seconds=_non_negative_float("PANEL_RESTORE_ITEM_DELAY_SECONDS", "1.5"),
    batch_size=_positive_int("PANEL_RESTORE_BATCH_SIZE", "20"),
    batch_pause_seconds=_non_negative_float("PANEL_RESTORE_BATCH_PAUSE_SECONDS", "5"),
    rate_limit_backoff_seconds=_non_negative_float("PANEL_RESTORE_RATE_LIMIT_BACKOFF_SECONDS", "10"),
    transport_backoff_seconds=_non_negative_float("PANEL_RESTORE_TRANSPORT_BACKOFF_SECONDS", "5"),
    max_attempts=_positive_int("PANEL_RESTORE_MAX_ATTEMPTS", "3"),
    wipe_pause_seconds=_non_negative_float("PANEL_RESTORE_WIPE_PAUSE_SECONDS", "2"),
  )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("PANEL_ENV", "development").lower()
  debug = _parse_bool(os.getenv("PANEL_DEBUG"))

  log_max_bytes = _positive_int("PANEL_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("PANEL_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("PANEL_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # Allow opt-in logging of HTTP request/response bodies with a size cap.
  log_http_bodies = _parse_bool(os.getenv("PANEL_LOG_HTTP_BODIES"))
  log_http_body_bytes = _positive_int("PANEL_LOG_HTTP_BODY_BYTES", "2048")

  upstream_url = (os.getenv("PANEL_UPSTREAM_URL") or DEFAULT_UPSTREAM_URL).strip()
  if not upstream_url.startswith(("http://", "https://")):
    raise ValueError("PANEL_UPSTREAM_URL must be an http(s) URL.")

  upstream_timeout_seconds = float(os.getenv("PANEL_UPSTREAM_TIMEOUT_SECONDS", "30"))
  if upstream_timeout_seconds <= 0:
    raise ValueError("PANEL_UPSTREAM_TIMEOUT_SECONDS must be a positive number.")

  key_prefix = (os.getenv("PANEL_KEY_PREFIX") or "Soryn").strip()

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("PANEL_ALLOWED_ORIGINS")),
    log_dir=(os.getenv("PANEL_LOG_DIR") or "./logs").strip(),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("PANEL_LOG_HTTP_4XX")),
    log_http_bodies=log_http_bodies,
    log_http_body_bytes=log_http_body_bytes,
    upstream_url=upstream_url,
    upstream_timeout_seconds=upstream_timeout_seconds,
    seller_key=_optional_str(os.getenv("PANEL_SELLER_KEY")),
    config_backend_url=_optional_str(os.getenv("PANEL_CONFIG_BACKEND_URL")),
    app_name=(os.getenv("PANEL_APP_NAME") or "Soryn").strip(),
    app_version=(os.getenv("PANEL_APP_VERSION") or "1.0").strip(),
    app_secret_salt=_optional_str(os.getenv("PANEL_APP_SECRET_SALT")),
    app_build_date=_optional_str(os.getenv("PANEL_APP_BUILD_DATE")),
    key_prefix=key_prefix,
    default_mask=(os.getenv("PANEL_DEFAULT_MASK") or f"{key_prefix}-XXXXX-XXXXX").strip(),
    restore=_load_restore_timings(),
  )
