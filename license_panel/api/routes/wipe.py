import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path

from license_panel.api.deps import get_upstream_client
from license_panel.api.models import ActionResponse
from license_panel.services import licenses as license_service
from license_panel.services.licenses import WipeScope
from license_panel.upstream.client import UpstreamClient

router = APIRouter()
logger = logging.getLogger("license_panel.api.routes.wipe")


@router.post("/wipe/{scope}", response_model=ActionResponse)
async def wipe(scope: Annotated[WipeScope, Path(description="licenses, unused, used, users or full")], client: Annotated[UpstreamClient, Depends(get_upstream_client)]) -> ActionResponse:
  """Bulk-delete licenses and/or users upstream."""
  logger.warning("Wipe requested scope=%s", scope)
  result = await license_service.wipe(client, scope)
  return ActionResponse(success=result.success, message=result.message)
