import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from mfgdash.app import create_app
from mfgdash.auth.session import SessionManager
from mfgdash.auth.users import UserStore
from mfgdash.config import Settings


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(secret_key="test-secret", users_path=tmp_path / "data" / "users.yml")


@pytest.fixture()
def store(settings: Settings) -> UserStore:
    return UserStore(settings.users_path)


@pytest.fixture()
def sessions(settings: Settings) -> SessionManager:
    return SessionManager.from_settings(settings)


@pytest.fixture()
def client(settings: Settings, store: UserStore) -> TestClient:
    return TestClient(create_app(settings, store=store))


@pytest.fixture()
def signup_payload() -> dict:
    return {"fullName": "A", "email": "a@b.com", "password": "secret1", "businessName": "Acme"}
