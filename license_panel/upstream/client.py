"""Single-call client for the upstream seller API."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Final, Protocol

import httpx
import msgspec

from license_panel.config import Settings
from license_panel.core.errors import DecodeError, TransportError, UpstreamRejection

logger = logging.getLogger(__name__)

DIAGNOSTIC_BODY_CHARS: Final[int] = 200


class UpstreamOperation(str, Enum):
  """Operation names understood by the seller API `type` parameter."""

  FETCH_ALL_KEYS = "fetchallkeys"
  FETCH_ALL_USERS = "fetchallusers"
  ADD_KEY = "add"
  DELETE_KEY = "del"
  DELETE_ALL_KEYS = "delallkeys"
  DELETE_UNUSED_KEYS = "delunusedkeys"
  DELETE_USED_KEYS = "delusedkeys"
  DELETE_ALL_USERS = "delallusers"
  BAN_KEY = "ban"
  UNBAN_KEY = "unban"
  BAN_USER = "banuser"
  UNBAN_USER = "unbanuser"
  RESET_HWID = "resethwid"
  DELETE_USER = "deluser"


@dataclass(frozen=True)
class UpstreamResult:
  """Decoded reply from the seller API."""

  success: bool
  message: str | None = None
  payload: dict[str, Any] = field(default_factory=dict)

  def raise_for_rejection(self) -> UpstreamResult:
    """Raise UpstreamRejection for a failure reply, otherwise return self for chaining."""
    if not self.success:
      raise UpstreamRejection(self.message)
    return self


class UpstreamInvoker(Protocol):
  """Anything that can perform a seller API call."""

  async def invoke(self, operation: UpstreamOperation | str, parameters: Mapping[str, str] | None = None) -> UpstreamResult:
    """Perform one upstream call."""
    ...


def _operation_name(operation: UpstreamOperation | str) -> str:
  if isinstance(operation, UpstreamOperation):
    return operation.value
  return operation


class UpstreamClient:
  """Issue seller API calls; holds only immutable configuration so concurrent use is safe."""

  def __init__(self, *, base_url: str, credential: str, timeout_seconds: float = 30.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
    if not credential:
      raise ValueError("Upstream credential must not be empty.")
    self._base_url = base_url
    self._credential = credential
    self._timeout = httpx.Timeout(timeout_seconds)
    self._transport = transport

  @classmethod
  def from_settings(cls, settings: Settings, credential: str, *, transport: httpx.AsyncBaseTransport | None = None) -> UpstreamClient:
    return cls(base_url=settings.upstream_url, credential=credential, timeout_seconds=settings.upstream_timeout_seconds, transport=transport)

  def _build_client(self) -> httpx.AsyncClient:
    """Build a per-call httpx client so no connection state is shared across calls."""
    # Never trust environment proxy variables; the credential travels in the query string.
    return httpx.AsyncClient(transport=self._transport, timeout=self._timeout, trust_env=False, follow_redirects=True)

  async def invoke(self, operation: UpstreamOperation | str, parameters: Mapping[str, str] | None = None) -> UpstreamResult:
    """Perform one round trip and decode the reply.

    Raises TransportError on connection-level failures and DecodeError when the body is not a JSON
    object. Failure replies are returned as results; callers decide whether to raise.
    """
    operation_name = _operation_name(operation)
    query = {"sellerkey": self._credential, "type": operation_name}
    if parameters:
      query.update({key: str(value) for key, value in parameters.items()})

    try:
      async with self._build_client() as client:
        response = await client.get(self._base_url, params=query)
    except httpx.RequestError as exc:
      # Log the operation only; the request URL carries the seller credential.
      logger.warning("Upstream %s transport failure: %s", operation_name, type(exc).__name__)
      raise TransportError(f"Upstream request failed: {type(exc).__name__}") from exc

    try:
      document = msgspec.json.decode(response.content)
    except msgspec.DecodeError as exc:
      raise DecodeError(f"Invalid response: {response.text[:DIAGNOSTIC_BODY_CHARS]}") from exc

    if not isinstance(document, dict):
      raise DecodeError(f"Invalid response: {response.text[:DIAGNOSTIC_BODY_CHARS]}")

    message = document.get("message")
    result = UpstreamResult(success=document.get("success") is True, message=message if isinstance(message, str) else None, payload=document)
    logger.debug("Upstream %s status=%s success=%s", operation_name, response.status_code, result.success)
    return result
