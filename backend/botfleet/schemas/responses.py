"""Response bodies for the REST surface."""

from datetime import datetime

from pydantic import Field

from botfleet.schemas.common import BaseSchema
from botfleet.services.profiles import BotProfile
from botfleet.supervisor.models import ChatEvent, SessionState


class PositionResponse(BaseSchema):
    x: int
    y: int
    z: int


class BotStatusResponse(BaseSchema):
    """Current state of one bot, same shape as the push channel."""

    id: str
    nickname: str
    server_ip: str = Field(..., alias="serverIp")
    port: int
    status: str
    health: float
    food: float
    position: PositionResponse
    auto_reconnect: bool = Field(..., alias="autoReconnect")
    error: str | None = None

    @classmethod
    def from_state(cls, state: SessionState) -> "BotStatusResponse":
        return cls.model_validate(state.to_dict())


class ConnectResponse(BaseSchema):
    success: bool = True
    bot_id: str = Field(..., alias="botId")
    bot: BotStatusResponse


class ChatLogResponse(BaseSchema):
    id: str
    bot_id: str = Field(..., alias="botId")
    sender: str
    content: str
    timestamp: int = Field(..., description="Epoch milliseconds")
    type: str

    @classmethod
    def from_event(cls, event: ChatEvent) -> "ChatLogResponse":
        return cls.model_validate(event.to_dict())


class ProfileResponse(BaseSchema):
    """Saved profile. The password itself is never returned."""

    id: str
    username: str
    server_ip: str = Field(..., alias="serverIp")
    port: int
    nickname: str
    has_password: bool = Field(..., alias="hasPassword")
    created_at: datetime = Field(..., alias="createdAt")

    @classmethod
    def from_profile(cls, profile: BotProfile) -> "ProfileResponse":
        return cls(
            id=profile.id,
            username=profile.username,
            server_ip=profile.host,
            port=profile.port,
            nickname=profile.nickname,
            has_password=profile.password is not None,
            created_at=profile.created_at,
        )


class HealthResponse(BaseSchema):
    status: str = "healthy"
    version: str
    sessions: int
    observers: int
