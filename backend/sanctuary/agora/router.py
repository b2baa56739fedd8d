"""Agora credential endpoints.

Endpoints:
    POST /api/agora/token          - Session-bound credential (1 hour)
    POST /api/agora/refresh-token  - Channel-direct credential (2 hours)
    GET  /api/agora/status         - Signing configuration status

The signing-config check runs first on both issuance endpoints, before the
body is even parsed, so a misconfigured deployment answers 503 no matter
what the body contains.
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from sanctuary.config import get_config
from sanctuary.errors import ValidationError, success
from sanctuary.sessions.authority import SessionAuthority
from sanctuary.sessions.store import SessionStore

from .issuer import CredentialIssuer
from .schemas import (
    PUBLISHER_ROLE,
    RTC_ROLES,
    CredentialResponse,
    RefreshTokenRequest,
    TokenRequest,
    coerce_uid,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agora", tags=["agora"])


def get_issuer() -> CredentialIssuer:
    return CredentialIssuer(lambda: get_config().agora_secrets)


def get_session_authority() -> SessionAuthority:
    store = SessionStore.get_instance(get_config().sessions.db_path)
    return SessionAuthority(store)


async def _json_object(request: Request) -> Dict[str, Any]:
    """Parse the body as a JSON object; an empty body counts as ``{}``."""
    if not (await request.body()).strip():
        return {}
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Request body must be a JSON object")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _required_text(value: Any, label: str) -> str:
    if value is None or value == "":
        raise ValidationError(f"{label} is required")
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} must be a non-empty string")
    return value


def _checked_role(value: Any) -> str:
    if value is None:
        return PUBLISHER_ROLE
    if value not in RTC_ROLES:
        raise ValidationError(f"Role must be one of: {', '.join(RTC_ROLES)}")
    return value


@router.post("/token")
async def create_token(
    http_request: Request,
    issuer: CredentialIssuer = Depends(get_issuer),
    authority: SessionAuthority = Depends(get_session_authority),
) -> dict:
    """Issue a credential for a live session's channel.

    Body: ``{"sessionId": str, "uid"?: int | numeric str, "role"?: str}``
    """
    issuer.ensure_configured()
    request = TokenRequest.model_validate(await _json_object(http_request))
    session_id = _required_text(request.sessionId, "Session ID")
    role = _checked_role(request.role)

    session = authority.resolve(session_id)
    credential = issuer.issue_for_session(session, coerce_uid(request.uid), role)
    return success(CredentialResponse.from_credential(credential).model_dump())


@router.post("/refresh-token")
async def refresh_token(
    http_request: Request,
    issuer: CredentialIssuer = Depends(get_issuer),
) -> dict:
    """Issue a longer-lived credential for a channel the caller already holds.

    Body: ``{"channelName": str, "uid"?: int | numeric str, "role"?: str}``
    """
    issuer.ensure_configured()
    request = RefreshTokenRequest.model_validate(await _json_object(http_request))
    channel_name = _required_text(request.channelName, "Channel name")
    role = _checked_role(request.role)

    credential = issuer.issue_for_channel(channel_name, coerce_uid(request.uid), role)
    return success(CredentialResponse.from_credential(credential).model_dump())


@router.get("/status")
async def agora_status(issuer: CredentialIssuer = Depends(get_issuer)) -> dict:
    """Report whether signing is configured and which features it enables."""
    return success(issuer.status())
