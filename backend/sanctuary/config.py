"""Sanctuary relay configuration.

Loads settings from two YAML files:
  * sanctuary.settings.yaml: non-secret configuration
  * sanctuary.secrets.yaml: secrets (never committed)

Secrets may also come from the environment (AGORA_APP_ID,
AGORA_APP_CERTIFICATE, JWT_SECRET), which wins over the secrets file.
"""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("sanctuary.settings.yaml")
SECRETS_FILE  = Path("sanctuary.secrets.yaml")

_APP_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{32}$")


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def _resolve_path(value: str, base_dir: Path) -> str:
    """Resolve a relative path against the settings file directory."""
    if value == ":memory:":
        return value
    path = Path(value)
    if path.is_absolute():
        return str(path)
    return str(base_dir / path)


# ---------------------------------------------------------------------------
# Secrets models
# ---------------------------------------------------------------------------


class AgoraSecrets(BaseModel):
    app_id:          Optional[str] = None
    app_certificate: Optional[str] = None

    @property
    def is_present(self) -> bool:
        """Both halves of the signing configuration are set."""
        return bool(self.app_id) and bool(self.app_certificate)

    @property
    def is_well_formed(self) -> bool:
        """Both values look like real Agora identifiers (32 hex chars)."""
        return (
            self.is_present
            and bool(_APP_ID_PATTERN.match(self.app_id or ""))
            and bool(_APP_ID_PATTERN.match(self.app_certificate or ""))
        )


class JWTSecrets(BaseModel):
    secret_key: str = "change-me-in-production"
    algorithm:  str = "HS256"


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 5000


class LoggingSettings(BaseModel):
    level: str = "info"


class StorageSettings(BaseModel):
    """Fixed uploads root shared by documents and avatars."""
    uploads_dir: str = "uploads"


class SessionStoreSettings(BaseModel):
    db_path: str = "sanctuary_sessions.duckdb"


class ChatSettings(BaseModel):
    max_attachment_bytes:          int       = 10 * 1024 * 1024
    allowed_attachment_extensions: List[str] = Field(
        default_factory=lambda: ["jpg", "jpeg", "png", "gif", "pdf", "doc", "docx", "txt"]
    )
    media_dir:      str = "uploads/flagship-chat"
    media_base_url: str = "/media/flagship-chat"

    @field_validator("allowed_attachment_extensions", mode="before")
    @classmethod
    def _normalise_extensions(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, list):
            return [str(item).strip().lower().lstrip(".") for item in value if str(item).strip()]
        return value


class AppConfig(BaseModel):
    server:        ServerSettings       = Field(default_factory=ServerSettings)
    logging:       LoggingSettings      = Field(default_factory=LoggingSettings)
    storage:       StorageSettings      = Field(default_factory=StorageSettings)
    sessions:      SessionStoreSettings = Field(default_factory=SessionStoreSettings)
    chat:          ChatSettings         = Field(default_factory=ChatSettings)
    agora_secrets: AgoraSecrets         = Field(default_factory=AgoraSecrets)
    jwt_secrets:   JWTSecrets           = Field(default_factory=JWTSecrets)


# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------


def _apply_env_overrides(secrets_data: Dict[str, Any]) -> Dict[str, Any]:
    """Let process environment take precedence over the secrets file."""
    agora = dict(secrets_data.get("agora") or {})
    jwt_section = dict(secrets_data.get("jwt") or {})

    if os.environ.get("AGORA_APP_ID"):
        agora["app_id"] = os.environ["AGORA_APP_ID"]
    if os.environ.get("AGORA_APP_CERTIFICATE"):
        agora["app_certificate"] = os.environ["AGORA_APP_CERTIFICATE"]
    if os.environ.get("JWT_SECRET"):
        jwt_section["secret_key"] = os.environ["JWT_SECRET"]

    return {"agora": agora, "jwt": jwt_section}


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(
    settings_path: Optional[Path] = None,
    secrets_path: Optional[Path] = None,
) -> AppConfig:
    """Load and merge settings + secrets into a single *AppConfig* object."""
    settings_path = Path(settings_path) if settings_path else SETTINGS_FILE
    if secrets_path is None:
        secrets_path = settings_path.parent / SECRETS_FILE.name
    secrets_path = Path(secrets_path)

    settings_data = _load_yaml(settings_path)
    secrets_data  = _apply_env_overrides(_load_yaml(secrets_path))

    settings_data["agora_secrets"] = secrets_data["agora"]
    settings_data["jwt_secrets"] = secrets_data["jwt"]

    config = AppConfig(**settings_data)

    base_dir = settings_path.resolve().parent
    config.storage.uploads_dir = _resolve_path(config.storage.uploads_dir, base_dir)
    config.sessions.db_path = _resolve_path(config.sessions.db_path, base_dir)
    config.chat.media_dir = _resolve_path(config.chat.media_dir, base_dir)

    logger.info(
        "Settings loaded (server=%s:%s, uploads_dir=%s, agora.configured=%s)",
        config.server.host,
        config.server.port,
        config.storage.uploads_dir,
        config.agora_secrets.is_present,
    )
    return config


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Return the process-wide config, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: AppConfig) -> None:
    """Replace the process-wide config (startup wiring and tests)."""
    global _config
    _config = config


def reset_config() -> None:
    """Drop the cached config so the next get_config() reloads from disk."""
    global _config
    _config = None
