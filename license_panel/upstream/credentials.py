"""Resolve the seller credential used for every upstream call."""

from __future__ import annotations

import hashlib
import logging
from urllib.parse import quote

import httpx
import msgspec

from license_panel.config import Settings
from license_panel.core.errors import CredentialError

logger = logging.getLogger(__name__)


def generate_app_signature(app_name: str, version: str, secret_salt: str, build_date: str) -> str:
  """Return the short signature the configuration backend expects in X-App-Signature."""
  signature_data = f"{app_name}-{version}-{secret_salt}-{build_date}"
  return hashlib.sha256(signature_data.encode("utf-8")).hexdigest()[:16].upper()


async def fetch_seller_key(settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None) -> str:
  """Fetch the seller key from the configuration backend using the app signature."""
  if not settings.config_backend_url:
    raise CredentialError("Configuration backend URL is not set.")
  if not settings.app_secret_salt or not settings.app_build_date:
    raise CredentialError("App signature salt and build date are required to contact the configuration backend.")

  signature = generate_app_signature(settings.app_name, settings.app_version, settings.app_secret_salt, settings.app_build_date)
  url = f"{settings.config_backend_url.rstrip('/')}/api/config/{quote(settings.app_name, safe='')}"
  headers = {"X-App-Signature": signature, "X-App-Name": settings.app_name, "X-App-Version": settings.app_version}

  try:
    async with httpx.AsyncClient(transport=transport, timeout=settings.upstream_timeout_seconds, trust_env=False) as client:
      response = await client.get(url, headers=headers)
  except httpx.RequestError as exc:
    raise CredentialError(f"Configuration backend unreachable: {type(exc).__name__}") from exc

  try:
    document = msgspec.json.decode(response.content)
  except msgspec.DecodeError as exc:
    raise CredentialError("Configuration backend returned an invalid response.") from exc

  config = document.get("config") if isinstance(document, dict) else None
  seller_key = config.get("seller_key") if isinstance(config, dict) else None
  if not (isinstance(document, dict) and document.get("success") is True and isinstance(seller_key, str) and seller_key):
    raise CredentialError("Could not fetch seller key.")

  return seller_key


async def resolve_credential(settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None) -> str | None:
  """Return the configured seller key, fall back to the configuration backend, or None when disconnected."""
  if settings.seller_key:
    return settings.seller_key

  if not settings.config_backend_url:
    logger.warning("No seller key configured; the panel starts disconnected.")
    return None

  try:
    seller_key = await fetch_seller_key(settings, transport=transport)
  except CredentialError as exc:
    logger.warning("Could not auto-connect: %s", exc)
    return None

  logger.info("Seller key fetched from configuration backend.")
  return seller_key
