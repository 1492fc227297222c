"""Test fixtures for API integration tests."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from botfleet.main import app
from botfleet.services.profiles import ProfileStore, get_profile_store
from botfleet.supervisor.supervisor import get_supervisor, set_supervisor


# =============================================================================
# Client Fixtures
# =============================================================================


@pytest.fixture
def profile_store() -> ProfileStore:
    return ProfileStore(default_port=25565)


@pytest_asyncio.fixture
async def client(supervisor, profile_store) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client wired to the running test supervisor.

    ASGITransport does not run the lifespan, so the supervisor fixture
    owns start and stop.
    """
    app.dependency_overrides[get_supervisor] = lambda: supervisor
    app.dependency_overrides[get_profile_store] = lambda: profile_store
    set_supervisor(supervisor)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    set_supervisor(None)


@pytest.fixture
def connect_body() -> dict:
    return {
        "id": "bot-1",
        "username": "Steve",
        "host": "mc.example.net",
        "port": 25565,
        "nickname": "Steve",
    }
