"""Schemas shared by every router: base config and the error envelope."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BaseSchema(BaseModel):
    """Accepts both snake_case names and camelCase aliases."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class ErrorDetail(BaseModel):
    code: str = Field(..., description="Machine-readable code, e.g. ALREADY_CONNECTED")
    message: str = Field(..., description="Operator-facing explanation")
    details: dict[str, Any] = Field(default_factory=dict, description="Ids involved in the failure")


class ErrorResponse(BaseSchema):
    """Body of every non-2xx response raised by the service."""

    error: ErrorDetail
    trace_id: str = Field(..., alias="traceId", description="Echo of X-Request-ID")


class SuccessResponse(BaseModel):
    """Outcome of a fire-and-forget command.

    ``success`` is False when the command was accepted but had nothing to act
    on, e.g. chat sent to a bot that is not connected.
    """

    success: bool = True
    message: str = "OK"
