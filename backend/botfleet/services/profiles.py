"""Saved bot profiles.

A profile is a reusable connection recipe. Connecting from a profile
uses the profile id as the session id, so one profile drives at most one
live session.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from botfleet.config import get_settings
from botfleet.supervisor.models import Credentials, Endpoint, SessionConfig

logger = logging.getLogger(__name__)

# Singleton instance
_profile_store: Optional["ProfileStore"] = None


@dataclass(frozen=True)
class BotProfile:
    id: str
    username: str
    host: str
    port: int
    nickname: str
    password: str | None = field(default=None, repr=False)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_session_config(self, auto_reconnect: bool = True) -> SessionConfig:
        return SessionConfig(
            id=self.id,
            credentials=Credentials(username=self.username, password=self.password),
            endpoint=Endpoint(host=self.host, port=self.port),
            display_name=self.nickname,
            auto_reconnect=auto_reconnect,
        )


class ProfileStore:
    """In-memory profile store, listed in creation order."""

    def __init__(self, default_port: int = 25565):
        self._default_port = default_port
        self._profiles: dict[str, BotProfile] = {}

    def list_profiles(self) -> list[BotProfile]:
        return list(self._profiles.values())

    def get_profile(self, profile_id: str) -> BotProfile | None:
        return self._profiles.get(profile_id)

    def create_profile(
        self,
        username: str,
        host: str,
        nickname: str | None = None,
        port: int | None = None,
        password: str | None = None,
    ) -> BotProfile:
        profile = BotProfile(
            id=str(uuid.uuid4()),
            username=username,
            host=host,
            port=port or self._default_port,
            nickname=nickname or username,
            password=password or None,
        )
        self._profiles[profile.id] = profile
        logger.info(f"[PROFILES] Created {profile.id} ({username}@{host}:{profile.port})")
        return profile

    def delete_profile(self, profile_id: str) -> bool:
        removed = self._profiles.pop(profile_id, None) is not None
        if removed:
            logger.info(f"[PROFILES] Deleted {profile_id}")
        return removed


def get_profile_store() -> ProfileStore:
    """Get the process-wide profile store."""
    global _profile_store
    if _profile_store is None:
        _profile_store = ProfileStore(default_port=get_settings().default_server_port)
    return _profile_store
