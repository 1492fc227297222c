"""Request bodies for the REST surface."""

from pydantic import Field, field_validator

from botfleet.schemas.common import BaseSchema


class ConnectBotRequest(BaseSchema):
    """Connect a bot from an explicit configuration."""

    id: str = Field(..., min_length=1, max_length=100, description="Caller-assigned session id")
    username: str = Field(..., min_length=1, max_length=64, description="Account username")
    host: str = Field(..., min_length=1, max_length=255, description="Server host")
    port: int | None = Field(default=None, ge=1, le=65535, description="Server port")
    password: str | None = Field(
        default=None,
        max_length=128,
        description="Server /login password, sent after spawn",
    )
    nickname: str = Field(..., min_length=1, max_length=64, description="Display name")
    auto_reconnect: bool | None = Field(
        default=None,
        alias="autoReconnect",
        description="Reconnect automatically after a drop (server default if omitted)",
    )

    @field_validator("password")
    @classmethod
    def blank_password_is_none(cls, v: str | None) -> str | None:
        return v or None


class CreateProfileRequest(BaseSchema):
    """Save a reusable bot profile."""

    username: str = Field(..., min_length=1, max_length=64)
    server_ip: str = Field(..., min_length=1, max_length=255, alias="serverIp")
    port: int | None = Field(default=None, ge=1, le=65535)
    password: str | None = Field(default=None, max_length=128)
    nickname: str = Field(..., min_length=1, max_length=64)


class ChatRequest(BaseSchema):
    """Send a chat line through a bot."""

    message: str = Field(..., min_length=1, max_length=256)


class AutoReconnectRequest(BaseSchema):
    enabled: bool
