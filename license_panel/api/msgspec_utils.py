"""msgspec helpers for the restore and backup routes."""

from __future__ import annotations

import msgspec
from fastapi import HTTPException, Request, status
from starlette.responses import Response

# Console dumps of large key sets run to a few megabytes; anything far beyond is not a backup.
MAX_BACKUP_BODY_BYTES = 32 * 1024 * 1024


async def decode_msgspec_request[T: msgspec.Struct](request: Request, struct_type: type[T], *, max_bytes: int = MAX_BACKUP_BODY_BYTES) -> T:
  """Decode a JSON request body into `struct_type`, rejecting oversized or malformed payloads."""
  payload_bytes = await request.body()
  if len(payload_bytes) > max_bytes:
    raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=f"Request body exceeds {max_bytes} bytes.")

  try:
    return msgspec.json.decode(payload_bytes, type=struct_type)
  except msgspec.DecodeError as exc:
    # ValidationError subclasses DecodeError, so type mismatches land here too.
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid request payload: {exc}") from exc


def encode_msgspec_response(payload: msgspec.Struct, *, status_code: int = status.HTTP_200_OK) -> Response:
  """Encode a msgspec.Struct value as a JSON HTTP response."""
  return Response(content=msgspec.json.encode(payload), status_code=status_code, media_type="application/json")
