"""
Shared fixtures.

The environment is configured before any careerpilot import so Settings
picks up a throwaway SQLite database and the feature flag.
"""
import os
import tempfile

_tmp_dir = tempfile.mkdtemp(prefix="careerpilot-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp_dir}/test.db"
os.environ["REDIS_URL"] = ""
os.environ["AI_API_KEY"] = ""
os.environ["ENABLE_TECHNICAL_CHALLENGES"] = "true"

import pytest
from fastapi.testclient import TestClient

from careerpilot.database import AsyncSessionLocal, drop_db, init_db
from careerpilot.services.ai_client import set_ai_client
from careerpilot.services.gateway import reset_gateway
from careerpilot.services.redis_client import set_redis
from careerpilot.services.voice_session import get_session_manager
from careerpilot.utils import metrics
from tests.factories import FakeAIClient, create_user, run


async def _reset_db():
    await drop_db()
    await init_db()


@pytest.fixture(autouse=True)
def _isolation():
    metrics.reset()
    reset_gateway()
    set_redis(None)
    get_session_manager().clear()
    from careerpilot.routes.auth import limiter
    limiter.reset()
    yield
    set_ai_client(None)
    set_redis(None)


@pytest.fixture
def fake_ai():
    client = FakeAIClient()
    set_ai_client(client)
    return client


@pytest.fixture
async def db():
    await _reset_db()
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
def client():
    run(_reset_db())
    from careerpilot.main import app
    with TestClient(app) as c:
        yield c


@pytest.fixture
def user_factory():
    """Create a user row and return (user_id, headers)."""

    def make(email="ada@example.com", name="Ada", **profile):
        user_id, api_key = run(create_user(email=email, name=name, **profile))
        return user_id, {"X-API-Key": api_key}

    return make
