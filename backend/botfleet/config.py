"""Application configuration."""
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # App
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_debug: bool = True
    log_level: str = "DEBUG"

    # CORS
    cors_origins: str = "http://localhost:5173"

    # Protocol layer
    protocol_connector: str | None = Field(
        default=None,
        description="Connector factory as 'module:callable' (unset = dials always fail)",
    )
    default_server_port: int = Field(
        default=25565,
        description="Port used when a profile or connect request omits one",
    )

    # Session recovery
    default_auto_reconnect: bool = True
    reconnect_delay_seconds: float = Field(
        default=5.0,
        description="Delay before a dropped session is re-dialed",
    )
    login_delay_seconds: float = Field(
        default=1.0,
        description="Delay between spawn and the /login command",
    )

    # Auto-responder
    responder_trigger: str = "tpmekaro"
    responder_command: str = Field(
        default="/tpahere {target}",
        description="Command sent when the trigger phrase is whispered",
    )
    responder_delay_seconds: float = Field(
        default=0.5,
        description="Delay before the auto-responder reply is sent",
    )
    operator_name: str = Field(
        default="Me",
        description="Sender name used when logging outbound chat",
    )

    # Queues and retention
    session_event_queue_size: int = Field(
        default=1000,
        description="Bounded protocol event queue per session",
    )
    observer_queue_size: int = Field(
        default=256,
        description="Outbox size per push-channel observer before eviction",
    )
    chat_log_retention: int = Field(
        default=500,
        description="Chat events retained per session in the log store",
    )

    @field_validator(
        "reconnect_delay_seconds",
        "login_delay_seconds",
        "responder_delay_seconds",
    )
    @classmethod
    def validate_delay(cls, v: float) -> float:
        """Delays may be zero but never negative."""
        if v < 0:
            raise ValueError("delays must not be negative")
        return v

    @field_validator(
        "session_event_queue_size",
        "observer_queue_size",
        "chat_log_retention",
    )
    @classmethod
    def validate_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("queue sizes and retention must be positive")
        return v

    @field_validator("responder_command")
    @classmethod
    def validate_responder_command(cls, v: str) -> str:
        if "{target}" not in v:
            raise ValueError("responder_command must contain a {target} placeholder")
        return v

    @field_validator("responder_trigger")
    @classmethod
    def validate_responder_trigger(cls, v: str) -> str:
        v = v.strip()
        if not v or len(v.split()) != 1:
            raise ValueError("responder_trigger must be a single token")
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate settings for production environment."""
        if self.app_env == "production":
            if self.app_debug:
                raise ValueError(
                    "app_debug must be False in production environment"
                )

            origins = [o.strip() for o in self.cors_origins.split(",")]
            if "*" in origins:
                raise ValueError(
                    "CORS wildcard '*' is not allowed in production environment. "
                    "Specify explicit allowed origins."
                )

        return self

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
