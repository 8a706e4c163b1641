"""Test fixtures for the chatroom core and HTTP surface."""

from collections.abc import AsyncGenerator

import httpx
import pytest

from chatroom.clock import ManualClock
from chatroom.config import Settings
from chatroom.database import create_engine, create_session_factory, init_db
from chatroom.main import create_app
from chatroom.registry import ParticipantRegistry
from chatroom.store import MessageStore
from chatroom.sweeper import LivenessSweeper

START = 1_700_000_000.0


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'chat.db'}"


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start=START)


@pytest.fixture
async def session_factory(database_url):
    engine = create_engine(database_url)
    await init_db(engine)
    try:
        yield create_session_factory(engine)
    finally:
        await engine.dispose()


@pytest.fixture
def registry(session_factory, clock) -> ParticipantRegistry:
    return ParticipantRegistry(session_factory, clock)


@pytest.fixture
def store(session_factory, clock) -> MessageStore:
    return MessageStore(session_factory, clock)


@pytest.fixture
def sweeper(registry, store, clock) -> LivenessSweeper:
    return LivenessSweeper(registry, store, clock, interval=15, timeout=10)


@pytest.fixture
async def app(database_url, clock):
    """App with its lifespan entered; the background sweep never fires."""
    settings = Settings(database_url=database_url, sweep_interval=3600, heartbeat_timeout=10)
    app = create_app(settings, clock=clock)
    async with app.router.lifespan_context(app):
        yield app


@pytest.fixture
async def client(app) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
