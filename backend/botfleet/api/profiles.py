"""Saved profile API endpoints."""

from fastapi import APIRouter, Query, status

from botfleet.api.deps import ProfilesDep, SupervisorDep
from botfleet.schemas import (
    BotStatusResponse,
    ConnectResponse,
    CreateProfileRequest,
    ErrorResponse,
    ProfileResponse,
    SuccessResponse,
)
from botfleet.utils.errors import ProfileNotFoundError

router = APIRouter(prefix="/profiles", tags=["Profiles"])


@router.get("", response_model=list[ProfileResponse])
async def list_profiles(profiles: ProfilesDep):
    return [ProfileResponse.from_profile(p) for p in profiles.list_profiles()]


@router.post("", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_profile(request: CreateProfileRequest, profiles: ProfilesDep):
    profile = profiles.create_profile(
        username=request.username,
        host=request.server_ip,
        nickname=request.nickname,
        port=request.port,
        password=request.password,
    )
    return ProfileResponse.from_profile(profile)


@router.delete(
    "/{profile_id}",
    response_model=SuccessResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Profile not found"},
    },
)
async def delete_profile(profile_id: str, profiles: ProfilesDep):
    """Delete a profile. A bot already connected from it keeps running."""
    if not profiles.delete_profile(profile_id):
        raise ProfileNotFoundError(profile_id)
    return SuccessResponse(message="Profile deleted")


@router.post(
    "/{profile_id}/connect",
    response_model=ConnectResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        404: {"model": ErrorResponse, "description": "Profile not found"},
        409: {"model": ErrorResponse, "description": "Bot already connected"},
    },
)
async def connect_profile(
    profile_id: str,
    profiles: ProfilesDep,
    supervisor: SupervisorDep,
    auto_reconnect: bool | None = Query(default=None, alias="autoReconnect"),
):
    """Connect the bot described by a profile; the bot id is the profile id."""
    state = await supervisor.connect_profile(profile_id, profiles, auto_reconnect=auto_reconnect)
    return ConnectResponse(bot_id=state.id, bot=BotStatusResponse.from_state(state))
