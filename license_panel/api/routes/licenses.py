import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from license_panel.api.deps import get_upstream_client
from license_panel.api.models import ActionResponse, BanLicenseRequest, GenerateLicensesRequest, GenerateLicensesResponse, LicenseKeyRequest, LicenseListResponse
from license_panel.config import Settings, get_settings
from license_panel.services import licenses as license_service
from license_panel.upstream.client import UpstreamClient

router = APIRouter()
logger = logging.getLogger("license_panel.api.routes.licenses")

Client = Annotated[UpstreamClient, Depends(get_upstream_client)]


@router.get("/licenses", response_model=LicenseListResponse)
async def list_licenses(client: Client) -> LicenseListResponse:
  """List every license known upstream."""
  return LicenseListResponse(licenses=await license_service.list_licenses(client))


@router.post("/generate", response_model=GenerateLicensesResponse)
async def generate_licenses(request: GenerateLicensesRequest, client: Client, settings: Settings = Depends(get_settings)) -> GenerateLicensesResponse:  # noqa: B008
  """Generate new keys from a mask."""
  keys = await license_service.generate_licenses(client, amount=request.amount, duration=request.duration, level=request.level, mask=request.mask or settings.default_mask, owner=settings.app_name)
  return GenerateLicensesResponse(keys=keys)


@router.post("/license/ban", response_model=ActionResponse)
async def ban_license(request: BanLicenseRequest, client: Client) -> ActionResponse:
  """Ban a license and its user."""
  result = await license_service.ban_license(client, request.key, request.reason)
  return ActionResponse(success=result.success, message=result.message)


@router.post("/license/unban", response_model=ActionResponse)
async def unban_license(request: LicenseKeyRequest, client: Client) -> ActionResponse:
  """Lift a license ban and its user ban."""
  result = await license_service.unban_license(client, request.key)
  return ActionResponse(success=result.success, message=result.message)


@router.post("/license/delete", response_model=ActionResponse)
async def delete_license(request: LicenseKeyRequest, client: Client) -> ActionResponse:
  result = await license_service.delete_license(client, request.key)
  return ActionResponse(success=result.success, message=result.message)
