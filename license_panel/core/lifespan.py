import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from license_panel.core.logging import initialize_logging
from license_panel.restore.engine import RestoreEngine
from license_panel.restore.state import RestoreJobState
from license_panel.upstream.client import UpstreamClient
from license_panel.upstream.credentials import resolve_credential


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Initialize logging, resolve the seller credential and own the restore engine."""
  from license_panel.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("license_panel.core.lifespan")

  try:
    initialize_logging(settings)
  except RuntimeError:
    # Keep serving with the default handlers; the file handler is a convenience.
    logger.warning("Logging setup failed; continuing with default handlers.", exc_info=True)

  logger.info("Starting license panel app=%s environment=%s", settings.app_name, settings.environment)

  # The restore state exists even while disconnected so status polling keeps working.
  app.state.restore_state = RestoreJobState()
  app.state.upstream_client = None
  app.state.restore_engine = None

  credential = await resolve_credential(settings)
  if credential:
    client = UpstreamClient.from_settings(settings, credential)
    app.state.upstream_client = client
    app.state.restore_engine = RestoreEngine(client=client, state=app.state.restore_state, timings=settings.restore)
    logger.info("Connected to upstream licensing API.")
  else:
    logger.warning("Upstream credential unavailable; license endpoints answer 503 until restart.")

  try:
    yield
  finally:
    engine: RestoreEngine | None = app.state.restore_engine
    if engine is not None:
      await engine.shutdown()
    logger.info("License panel stopped.")
