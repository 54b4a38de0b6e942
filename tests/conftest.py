import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from cpm.app import create_app
from cpm.auth.passwords import hash_password
from cpm.auth.users import UserStore
from cpm.config import Settings

PASSWORD = "correct horse battery staple"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(secret_key="test-secret", users_path=tmp_path / "data" / "users.yml")


@pytest.fixture()
def user_store(settings: Settings) -> UserStore:
    """
    A users.yml with:
      - ana@example.com: active member, verified
      - root@example.com: active admin
      - gone@example.com: inactive member
    """
    store = UserStore(settings.users_path)
    store.create_user("ana@example.com", hash_password(PASSWORD), name="Ana", email_verified="2026-01-01T00:00:00+00:00")
    store.create_user("root@example.com", hash_password(PASSWORD), name="Root", role="admin")
    store.create_user("gone@example.com", hash_password(PASSWORD), name="Gone", active=False)
    return store


@pytest.fixture()
def app(settings, user_store):
    return create_app(settings)


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def login(client):
    def _login(email: str = "ana@example.com", password: str = PASSWORD):
        r = client.post("/api/auth/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.text
        return r

    return _login
