"""Backup export, backup parsing and the bulk restore control surface."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from starlette.responses import Response

from license_panel.api.deps import get_restore_engine, get_status_reporter, get_upstream_client
from license_panel.api.models import BackupPayload, BackupResponse, LicensePayload, ParseBackupRequest, ParseBackupResponse, RestoreRequest, RestoreStartResponse, RestoreStatusResponse, RestoreStopResponse
from license_panel.api.msgspec_utils import decode_msgspec_request, encode_msgspec_response
from license_panel.backup.models import LicenseRecord
from license_panel.backup.parser import parse_backup
from license_panel.config import Settings, get_settings
from license_panel.restore.engine import RestoreEngine
from license_panel.restore.models import RestoreSnapshot
from license_panel.restore.status import StatusReporter
from license_panel.services import licenses as license_service
from license_panel.upstream.client import UpstreamClient

router = APIRouter()
logger = logging.getLogger(__name__)


def _license_payload(record: LicenseRecord) -> LicensePayload:
  return LicensePayload(key=record.key, status=record.status.value, level=record.level, duration=record.resolved_duration)


def _status_response(snapshot: RestoreSnapshot) -> RestoreStatusResponse:
  return RestoreStatusResponse(
    state=snapshot.state.value,
    running=snapshot.running,
    total=snapshot.total,
    processed=snapshot.processed,
    succeeded=snapshot.succeeded,
    skipped=snapshot.skipped,
    failed=snapshot.failed,
    current_key=snapshot.current_key,
    terminal_error=snapshot.terminal_error,
    started_at=snapshot.started_at,
    finished_at=snapshot.finished_at,
  )


@router.get("/backup")
async def export_backup(client: Annotated[UpstreamClient, Depends(get_upstream_client)], settings: Annotated[Settings, Depends(get_settings)]) -> Response:
  """Export all licenses and users as a backup document."""
  document = await license_service.export_backup(client, app_name=settings.app_name)
  payload = BackupPayload(export_date=document.export_date, app_name=document.app_name, licenses=document.licenses, users=document.users)
  return encode_msgspec_response(BackupResponse(backup=payload))


@router.post("/parse-backup")
async def parse_backup_content(request: Request, settings: Annotated[Settings, Depends(get_settings)]) -> Response:
  """Parse uploaded backup text (JSON export or console dump) into license records."""
  payload = await decode_msgspec_request(request, ParseBackupRequest)
  parsed = parse_backup(payload.content, key_prefix=settings.key_prefix)
  return encode_msgspec_response(ParseBackupResponse(licenses=[_license_payload(record) for record in parsed.licenses], format=parsed.format))


@router.post("/restore")
async def start_restore(request: Request, engine: Annotated[RestoreEngine, Depends(get_restore_engine)]) -> Response:
  """Accept a restore and return immediately; progress is polled via /restore/status."""
  payload = await decode_msgspec_request(request, RestoreRequest)
  ack = engine.start(payload.licenses, wipe_first=payload.wipe_first)
  return encode_msgspec_response(RestoreStartResponse(total=ack.total, message=f"Restore started for {ack.total} license(s)"), status_code=202)


@router.get("/restore/status")
async def restore_status(reporter: Annotated[StatusReporter, Depends(get_status_reporter)]) -> Response:
  """Return the current restore progress snapshot."""
  return encode_msgspec_response(_status_response(reporter.snapshot()))


@router.post("/restore/stop")
async def stop_restore(reporter: Annotated[StatusReporter, Depends(get_status_reporter)]) -> Response:
  """Request a cooperative stop of the running restore."""
  ack = reporter.request_stop()
  return encode_msgspec_response(RestoreStopResponse(message=ack.message, was_running=ack.was_running))
