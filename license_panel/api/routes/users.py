from typing import Annotated

from fastapi import APIRouter, Depends

from license_panel.api.deps import get_upstream_client
from license_panel.api.models import ActionResponse, UsernameRequest, UserListResponse
from license_panel.services import licenses as license_service
from license_panel.upstream.client import UpstreamClient

router = APIRouter()

Client = Annotated[UpstreamClient, Depends(get_upstream_client)]


@router.get("/users", response_model=UserListResponse)
async def list_users(client: Client) -> UserListResponse:
  """List every user known upstream."""
  return UserListResponse(users=await license_service.list_users(client))


@router.post("/user/reset-hwid", response_model=ActionResponse)
async def reset_hwid(request: UsernameRequest, client: Client) -> ActionResponse:
  """Clear the hardware binding of a user."""
  result = await license_service.reset_hwid(client, request.username)
  return ActionResponse(success=result.success, message=result.message)


@router.post("/user/delete", response_model=ActionResponse)
async def delete_user(request: UsernameRequest, client: Client) -> ActionResponse:
  result = await license_service.delete_user(client, request.username)
  return ActionResponse(success=result.success, message=result.message)
