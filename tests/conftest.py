"""Test fixtures — a fresh SQLite database and upload dir per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Environment is pinned before dogapi is imported, so the module-level
   settings/engine never point at a real database or upload dir.
2. Each test gets its own SQLite file under tmp_path with the schema
   created from the ORM models, so there is no cross-test pollution.
3. The app's get_db and get_media_store dependencies are overridden to
   use that database and a per-test upload directory.

Auth is NOT mocked: tests register and log in through the real routes
(see the `login_as` fixture), so the bearer-token gateway is exercised
on every protected request.
"""

import os
import tempfile
import uuid

_TMP = tempfile.mkdtemp(prefix="dogapi-test-")
os.environ["DOGAPI_ENVIRONMENT"] = "development"
os.environ["DOGAPI_DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP}/dogapi.db"
os.environ["DOGAPI_UPLOAD_DIR"] = os.path.join(_TMP, "uploads")
os.environ["DOGAPI_BCRYPT_ROUNDS"] = "4"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from dogapi.auth.dependencies import CurrentIdentity  # noqa: E402
from dogapi.db.engine import build_engine, get_db, init_models  # noqa: E402
from dogapi.main import app  # noqa: E402
from dogapi.services.user_service import UserService  # noqa: E402
from dogapi.storage.media import MediaStore, get_media_store  # noqa: E402


@pytest_asyncio.fixture()
async def db_engine(tmp_path):
    """Per-test engine on its own SQLite file, schema created from models."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_models(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture()
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """Session for service-level tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
def media(tmp_path):
    return MediaStore(tmp_path / "uploads")


@pytest_asyncio.fixture()
async def client(session_factory, media):
    """HTTP client with get_db and get_media_store pointed at per-test state."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_media_store] = lambda: media

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture()
def login_as(client):
    """Register + log in a user through the API; returns auth headers.

    Learn: Returns a coroutine function so a test can create as many
    users as it needs (e.g. owner vs. intruder).
    """

    async def _login(username=None, password="secret1"):
        username = username or f"user-{uuid.uuid4().hex[:8]}"
        r = await client.post(
            "/api/auth/register", json={"username": username, "password": password}
        )
        assert r.status_code == 201, r.text
        r = await client.post(
            "/api/auth/login", json={"username": username, "password": password}
        )
        assert r.status_code == 200, r.text
        return {"Authorization": f"Bearer {r.json()['token']}"}

    return _login


@pytest.fixture()
def make_identity(db_session):
    """Create a user directly through the service; returns its identity."""

    async def _make(username=None):
        user = await UserService(db_session).register(
            username or f"svc-{uuid.uuid4().hex[:8]}", "secret1"
        )
        return CurrentIdentity(user_id=str(user.id), role=user.role)

    return _make
