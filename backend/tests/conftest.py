"""Shared test fixtures and configuration for backend tests."""
import pytest
from fastapi.testclient import TestClient

from sanctuary.auth.service import Principal, issue_token
from sanctuary.chat.hub import hub
from sanctuary.config import (
    AgoraSecrets,
    AppConfig,
    ChatSettings,
    JWTSecrets,
    SessionStoreSettings,
    StorageSettings,
    reset_config,
    set_config,
)
from sanctuary.main import app
from sanctuary.sessions.store import SessionStore

APP_ID = "0123456789abcdef0123456789abcdef"
APP_CERTIFICATE = "fedcba9876543210fedcba9876543210"


@pytest.fixture
def app_config(tmp_path, monkeypatch):
    """Install an isolated config: temp dirs, in-memory sessions, test secrets."""
    for var in ("AGORA_APP_ID", "AGORA_APP_CERTIFICATE", "JWT_SECRET"):
        monkeypatch.delenv(var, raising=False)

    uploads_dir = tmp_path / "uploads"
    uploads_dir.mkdir()

    config = AppConfig(
        storage=StorageSettings(uploads_dir=str(uploads_dir)),
        sessions=SessionStoreSettings(db_path=":memory:"),
        chat=ChatSettings(media_dir=str(tmp_path / "media")),
        agora_secrets=AgoraSecrets(app_id=APP_ID, app_certificate=APP_CERTIFICATE),
        jwt_secrets=JWTSecrets(secret_key="test-jwt-secret"),
    )
    SessionStore.reset_instance()
    set_config(config)
    yield config
    SessionStore.reset_instance()
    reset_config()


@pytest.fixture
def session_store(app_config):
    return SessionStore.get_instance(app_config.sessions.db_path)


@pytest.fixture
def api_client(app_config):
    """Provide a TestClient for the main FastAPI app.

    Not used as a context manager, so the lifespan (which resets the
    session store on shutdown) does not run.
    """
    return TestClient(app)


@pytest.fixture
def auth_headers(app_config):
    """Build an ``x-auth-token`` header for a caller with the given role."""

    def _make(role: str = "user", user_id: str = "user-1", alias: str = "Quiet Owl") -> dict:
        token = issue_token(Principal(id=user_id, role=role, alias=alias))
        return {"x-auth-token": token}

    return _make


@pytest.fixture(autouse=True)
def cleanup_rooms():
    """Clear hub rooms and dependency overrides after each test."""
    yield
    hub.active_connections.clear()
    app.dependency_overrides.clear()
