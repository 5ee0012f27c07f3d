import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTH_SECRET", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("AUTH_URL", "http://localhost:8000")
os.environ.setdefault("AUTH_TRUSTED_ORIGINS", "http://localhost:3000")
os.environ.setdefault("CORS_ALLOW_ORIGINS", "http://localhost:3000")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient

from tasktracker.config import Settings, get_settings
from tasktracker.database import get_session
from tasktracker.lifecycle import Lifecycle
from tasktracker.main import create_app
from tasktracker.models import ROLE_ADMIN
from tasktracker.services.auth import AuthService

TEST_SECRET = "test-secret-key-that-is-at-least-32-characters"
PASSWORD = "password123"


def make_settings(**overrides) -> Settings:
    values = dict(
        database_url="sqlite://",
        auth_secret=TEST_SECRET,
        auth_url="http://localhost:8000",
        auth_trusted_origins="http://localhost:3000",
        cors_allow_origins="http://localhost:3000",
        environment="test",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def lifecycle():
    return Lifecycle()


@pytest.fixture
def app(settings, lifecycle):
    return create_app(settings, lifecycle)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def sign_up(client, email: str, name: str = "Test User", password: str = PASSWORD):
    """Register through the API and return ``(token, user)``.

    The session cookie is dropped so each test picks its identity explicitly.
    """
    response = client.post("/api/auth/sign-up/email", json={"name": name, "email": email, "password": password})
    assert response.status_code == 200, response.text
    client.cookies.clear()
    body = response.json()
    return body["token"], body["user"]


def sign_in(client, email: str, password: str = PASSWORD):
    response = client.post("/api/auth/sign-in/email", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    client.cookies.clear()
    body = response.json()
    return body["token"], body["user"]


@pytest.fixture
def user_a(client):
    token, user = sign_up(client, "alice@example.com", name="Alice")
    return {"token": token, "user": user, "headers": auth_headers(token)}


@pytest.fixture
def user_b(client):
    token, user = sign_up(client, "bob@example.com", name="Bob")
    return {"token": token, "user": user, "headers": auth_headers(token)}


@pytest.fixture
def admin(client, settings):
    with get_session() as db:
        AuthService(db, settings).create_user(
            name="Admin", email="admin@example.com", password=PASSWORD, role=ROLE_ADMIN
        )
    token, user = sign_in(client, "admin@example.com")
    return {"token": token, "user": user, "headers": auth_headers(token)}
