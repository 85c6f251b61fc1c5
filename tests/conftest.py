import asyncio
import os
import tempfile
from pathlib import Path

import pytest

# Set up environment variables before importing app
_TMP_DIR = Path(tempfile.mkdtemp(prefix="registry-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR / 'test_registry.db'}"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["ARGON2_TIME_COST"] = "1"
os.environ["ARGON2_MEMORY_COST"] = "8"
os.environ["ARGON2_PARALLELISM"] = "1"
os.environ["TRUSTED_HOSTS"] = "*"

from fastapi.testclient import TestClient

from app.main import app
from app.core.database import drop_db, init_db

ADMIN_USERNAME = "admin"
ADMIN_EMAIL = "admin@school.edu"
ADMIN_PASSWORD = "admin-password"


@pytest.fixture(autouse=True)
def fresh_database():
    """Every test starts from empty tables."""
    asyncio.run(drop_db())
    asyncio.run(init_db())
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def login(client: TestClient, username: str, password: str) -> str:
    response = client.post("/api/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["token"]


def setup_admin(client: TestClient) -> dict:
    response = client.post(
        "/api/auth/setup-admin",
        json={"username": ADMIN_USERNAME, "email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 201, response.text
    return response.json()


def create_user(
    client: TestClient,
    headers: dict,
    username: str,
    role: str = "TEACHER",
    password: str = "teacher-password",
    status: str = "active",
) -> dict:
    role_response = client.get(f"/api/roles/name/{role}", headers=headers)
    assert role_response.status_code == 200, role_response.text

    response = client.post(
        "/api/users",
        headers=headers,
        json={
            "username": username,
            "email": f"{username}@school.edu",
            "password": password,
            "roleId": role_response.json()["id"],
            "status": status,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def admin_headers(client):
    setup_admin(client)
    return auth_headers(login(client, ADMIN_USERNAME, ADMIN_PASSWORD))


@pytest.fixture
def teacher_headers(client, admin_headers):
    create_user(client, admin_headers, "alice")
    return auth_headers(login(client, "alice", "teacher-password"))
