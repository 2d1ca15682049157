import os
import tempfile

# must run before greencare.config is imported
_DB_PATH = os.path.join(tempfile.mkdtemp(prefix="greencare-"), "test.db")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_PATH}"
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from greencare.db import Base, database, engine  # noqa: E402
from greencare.deps import get_current_user  # noqa: E402
from greencare.main import create_app  # noqa: E402


# Force AnyIO to use asyncio only (pas de trio)
@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def tables():
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield


@pytest.fixture
async def db(anyio_backend, tables):
    await database.connect()
    try:
        yield database
    finally:
        await database.disconnect()


async def _fake_user():
    return {"sub": "tester"}


@pytest.fixture
def app():
    application = create_app()
    application.dependency_overrides[get_current_user] = _fake_user
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def store(app):
    return app.state.store


@pytest.fixture
async def client(app, db):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
