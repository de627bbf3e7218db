"""Error taxonomy shared by the upstream client, restore engine and API handlers."""

from __future__ import annotations


class PanelError(Exception):
  """Base class for errors raised by the license panel."""


class InvalidInputError(PanelError):
  """Raised when a restore request does not carry a usable license list."""


class AlreadyInProgressError(PanelError):
  """Raised when a restore is requested while another one is still running."""


class CredentialError(PanelError):
  """Raised when the seller credential cannot be resolved."""


class UpstreamError(PanelError):
  """Base class for failures talking to the upstream licensing API."""


class TransportError(UpstreamError):
  """Connection-level failure (DNS, TCP, TLS, timeout) calling the upstream API."""


class DecodeError(UpstreamError):
  """The upstream API answered with a body that is not a JSON object."""


class UpstreamRejection(UpstreamError):
  """The upstream API answered with a well-formed failure reply."""

  def __init__(self, message: str | None) -> None:
    self.message = message or "Upstream request was rejected."
    super().__init__(self.message)
