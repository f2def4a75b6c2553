from __future__ import annotations

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from heartbeats.config import Settings
from heartbeats.database import create_engine, create_session_factory, init_db
from heartbeats.dependencies import get_now
from heartbeats.main import create_app

CLIENT_TOKEN = "client-secret"
ADMIN_TOKEN = "admin-secret"


class FakeClock:
    """Stand-in for get_now; tests move ``now`` by hand."""

    def __init__(self, now: int = 1000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        client_token=CLIENT_TOKEN,
        admin_token=ADMIN_TOKEN,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'heartbeats.db'}",
        data_path=str(tmp_path),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def app(settings, clock):
    app = create_app(settings)
    app.dependency_overrides[get_now] = clock
    return app


@pytest.fixture
def client(app):
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


@pytest_asyncio.fixture
async def engine(settings):
    engine = create_engine(settings.database_url)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine, settings):
    await init_db(engine, settings)
    async with create_session_factory(engine)() as session:
        yield session
