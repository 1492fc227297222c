"""Bot session API endpoints."""

from fastapi import APIRouter, Query, status

from botfleet.api.deps import SupervisorDep
from botfleet.config import get_settings
from botfleet.schemas import (
    AutoReconnectRequest,
    BotStatusResponse,
    ChatLogResponse,
    ChatRequest,
    ConnectBotRequest,
    ConnectResponse,
    ErrorResponse,
    SuccessResponse,
)
from botfleet.supervisor.models import Credentials, Endpoint, SessionConfig
from botfleet.utils.errors import UnknownSessionError

router = APIRouter(prefix="/bots", tags=["Bots"])


@router.get("", response_model=list[BotStatusResponse])
async def list_bots(supervisor: SupervisorDep):
    """List every tracked bot in registration order."""
    return [BotStatusResponse.from_state(state) for state in supervisor.get_all_statuses()]


@router.post(
    "/connect",
    response_model=ConnectResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        409: {"model": ErrorResponse, "description": "Bot already connected"},
    },
)
async def connect_bot(request: ConnectBotRequest, supervisor: SupervisorDep):
    """Start connecting a bot.

    Returns once the dial is underway. Progress arrives on the push channel.
    """
    settings = get_settings()
    config = SessionConfig(
        id=request.id,
        credentials=Credentials(username=request.username, password=request.password),
        endpoint=Endpoint(host=request.host, port=request.port or settings.default_server_port),
        display_name=request.nickname,
        auto_reconnect=settings.default_auto_reconnect,
    )
    state = await supervisor.connect(config, auto_reconnect=request.auto_reconnect)
    return ConnectResponse(bot_id=state.id, bot=BotStatusResponse.from_state(state))


@router.post("/{bot_id}/disconnect", response_model=SuccessResponse)
async def disconnect_bot(
    bot_id: str,
    supervisor: SupervisorDep,
    permanent: bool = Query(default=False, description="Forget the bot entirely"),
):
    """Disconnect a bot. Unknown ids succeed as a no-op."""
    changed = await supervisor.disconnect(bot_id, permanent=permanent)
    if not changed:
        return SuccessResponse(message="Bot not tracked, nothing to do")
    return SuccessResponse(message="Bot removed" if permanent else "Bot disconnected")


@router.post(
    "/{bot_id}/reconnect",
    response_model=BotStatusResponse,
    responses={
        404: {"model": ErrorResponse, "description": "No stored config"},
    },
)
async def reconnect_bot(bot_id: str, supervisor: SupervisorDep):
    """Re-dial a known bot now and re-enable auto-reconnect."""
    state = await supervisor.reconnect(bot_id)
    return BotStatusResponse.from_state(state)


@router.post("/{bot_id}/chat", response_model=SuccessResponse)
async def send_chat(bot_id: str, request: ChatRequest, supervisor: SupervisorDep):
    """Send a chat line. Not being connected is reported, not raised."""
    sent = await supervisor.send_chat(bot_id, request.message)
    if not sent:
        return SuccessResponse(success=False, message="Bot is not connected")
    return SuccessResponse(message="Message sent")


@router.put(
    "/{bot_id}/auto-reconnect",
    response_model=BotStatusResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Bot not found"},
    },
)
async def set_auto_reconnect(
    bot_id: str,
    request: AutoReconnectRequest,
    supervisor: SupervisorDep,
):
    state = await supervisor.set_auto_reconnect(bot_id, request.enabled)
    return BotStatusResponse.from_state(state)


@router.get(
    "/{bot_id}/status",
    response_model=BotStatusResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Bot not found"},
    },
)
async def get_bot_status(bot_id: str, supervisor: SupervisorDep):
    state = supervisor.get_status(bot_id)
    if state is None:
        raise UnknownSessionError(bot_id)
    return BotStatusResponse.from_state(state)


@router.get("/{bot_id}/logs", response_model=list[ChatLogResponse])
async def get_bot_logs(
    bot_id: str,
    supervisor: SupervisorDep,
    limit: int = Query(default=100, ge=1, le=500, description="Most recent N records"),
):
    """Chat history, oldest first. Still available after a bot is removed."""
    return [ChatLogResponse.from_event(e) for e in supervisor.get_chat_logs(bot_id, limit)]
