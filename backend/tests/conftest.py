import pytest
import os
import warnings
from datetime import date
from uuid import uuid4
from sqlalchemy import create_engine

# Set environment variables BEFORE importing app modules
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///file:gifiti_tests?mode=memory&cache=shared&uri=true"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-32-chars-minimum!!"

warnings.filterwarnings("ignore", category=DeprecationWarning)

from httpx import AsyncClient, ASGITransport
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.db.session import Base, get_db
from app.main import app
from app.core.config import settings


def pytest_configure(config):
    warnings.filterwarnings("ignore", category=DeprecationWarning)


def pytest_sessionstart(session):
    warnings.simplefilter("ignore", DeprecationWarning)


@pytest.fixture(scope="session", autouse=True)
def disable_rate_limiting():
    """Disable rate limiting for all tests."""
    original = settings.rate_limit_enabled
    settings.rate_limit_enabled = False
    yield
    settings.rate_limit_enabled = original


@pytest.fixture(autouse=True)
def sync_db_override(tmp_path):
    """Fresh SQLite file per test; yields the session factory bound to it."""
    db_path = tmp_path / "sync-test.db"
    from app.models import models as models_module
    _ = models_module
    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    async_session = async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)

    async def override_get_db():
        async with async_session() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield async_session
    app.dependency_overrides.clear()
    engine.sync_engine.dispose()


@pytest.fixture
def session_factory(sync_db_override):
    return sync_db_override


@pytest.fixture
async def async_client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def register_user(client: TestClient, nickname: str | None = None, **overrides) -> dict:
    """Registers a user and returns {"user", "token", "headers"}."""
    suffix = uuid4().hex[:8]
    payload = {
        "email": f"user-{suffix}@example.com",
        "password": "SecurePass123!",
        "nickname": nickname or f"user_{suffix}",
        "realName": overrides.pop("realName", f"Usuario {suffix}"),
        "birthDate": overrides.pop("birthDate", date(1990, 6, 15).isoformat()),
    }
    payload.update(overrides)
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    return {
        "user": data["user"],
        "token": data["token"],
        "headers": {"Authorization": f"Bearer {data['token']}"},
        "password": payload["password"],
    }


def connect_users(client: TestClient, first: dict, second: dict) -> dict:
    """Creates an accepted contact between two registered users."""
    response = client.post(
        "/api/contacts/request",
        json={"userId": second["user"]["id"]},
        headers=first["headers"],
    )
    assert response.status_code == 201, response.text
    contact = response.json()["data"]
    response = client.put(f"/api/contacts/{contact['id']}/accept", headers=second["headers"])
    assert response.status_code == 200, response.text
    return response.json()["data"]


def add_wish(client: TestClient, owner: dict, title: str = "Auriculares", **extra) -> dict:
    body = {"title": title, "description": f"Descripción de {title}", **extra}
    response = client.post("/api/wishes", json=body, headers=owner["headers"])
    assert response.status_code == 201, response.text
    return response.json()["data"]
