"""Pydantic schemas for request/response validation."""

from botfleet.schemas.common import BaseSchema, ErrorDetail, ErrorResponse, SuccessResponse
from botfleet.schemas.requests import (
    AutoReconnectRequest,
    ChatRequest,
    ConnectBotRequest,
    CreateProfileRequest,
)
from botfleet.schemas.responses import (
    BotStatusResponse,
    ChatLogResponse,
    ConnectResponse,
    HealthResponse,
    PositionResponse,
    ProfileResponse,
)

__all__ = [
    # Common
    "BaseSchema",
    "ErrorDetail",
    "ErrorResponse",
    "SuccessResponse",
    # Requests
    "AutoReconnectRequest",
    "ChatRequest",
    "ConnectBotRequest",
    "CreateProfileRequest",
    # Responses
    "BotStatusResponse",
    "ChatLogResponse",
    "ConnectResponse",
    "HealthResponse",
    "PositionResponse",
    "ProfileResponse",
]
