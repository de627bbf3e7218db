"""FastAPI dependencies resolving the per-application panel components."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from license_panel.restore.engine import RestoreEngine
from license_panel.restore.state import RestoreJobState
from license_panel.restore.status import StatusReporter
from license_panel.upstream.client import UpstreamClient

_NOT_CONNECTED_MSG = "Not connected"


def get_upstream_client(request: Request) -> UpstreamClient:
  """Return the upstream client, or 503 while no seller credential is available."""
  client = getattr(request.app.state, "upstream_client", None)
  if client is None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=_NOT_CONNECTED_MSG)
  return client


def get_restore_state(request: Request) -> RestoreJobState:
  state = getattr(request.app.state, "restore_state", None)
  if state is None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Restore state is not initialized.")
  return state


def get_restore_engine(request: Request) -> RestoreEngine:
  engine = getattr(request.app.state, "restore_engine", None)
  if engine is None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=_NOT_CONNECTED_MSG)
  return engine


def get_status_reporter(state: Annotated[RestoreJobState, Depends(get_restore_state)]) -> StatusReporter:
  return StatusReporter(state)
