import os

os.environ["STUDIO_DB"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_URL"] = "redis://localhost:6379/0"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["STUDIO_TIMEZONE"] = "UTC"
os.environ["AUTO_CREATE_SCHEMA"] = "false"
os.environ.pop("RABBIT_URL", None)

import fakeredis
import pytest
from httpx import AsyncClient, ASGITransport

from studio_booking import models  # noqa: F401  registers the tables
from studio_booking.container import Studio
from studio_booking.db import get_engine, get_session, init_db


@pytest.fixture
async def engine(tmp_path):
    eng = get_engine(f"sqlite+aiosqlite:///{tmp_path / 'studio.db'}")
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return get_session(engine)


@pytest.fixture
async def redis():
    r = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield r
    await r.aclose()


@pytest.fixture
async def studio(session_factory, redis):
    s = Studio(session_factory, redis)
    await s.start()
    yield s
    await s.close()


@pytest.fixture
async def client(studio):
    from studio_booking.main import app

    app.state.studio = studio
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
