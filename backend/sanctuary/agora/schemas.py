"""Request/response schemas for the Agora credential endpoints."""
from typing import Any

from pydantic import BaseModel, Field

PUBLISHER_ROLE = "publisher"
SUBSCRIBER_ROLE = "subscriber"
RTC_ROLES = (PUBLISHER_ROLE, SUBSCRIBER_ROLE)


def coerce_uid(value: object) -> int:
    """Numeric strings become ints; anything unparseable means 0 (auto-assign)."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return 0


class Credential(BaseModel):
    """A freshly signed RTC credential. Never reissued in place."""
    token: str = Field(..., description="Signed Agora token")
    channel_name: str = Field(..., description="Channel the token is bound to")
    app_id: str = Field(..., description="Agora app ID")
    uid: int = Field(default=0, description="Participant ID, 0 = auto-assign")
    role: str = Field(default=PUBLISHER_ROLE, description="RTC role")
    ttl_seconds: int = Field(..., description="Validity window from issuance")
    issued_at: int = Field(..., description="Unix issue time")


class TokenRequest(BaseModel):
    """POST /agora/token request body.

    Fields are untyped here; the router checks them only after the signing
    configuration has been checked.
    """
    sessionId: Any = Field(default=None, description="Sanctuary session ID")
    uid: Any = Field(default=0, description="Participant ID, 0 = auto-assign")
    role: Any = Field(default=None, description="publisher or subscriber; null means publisher")


class RefreshTokenRequest(BaseModel):
    """POST /agora/refresh-token request body."""
    channelName: Any = Field(default=None, description="Agora channel name")
    uid: Any = Field(default=0, description="Participant ID, 0 = auto-assign")
    role: Any = Field(default=None, description="publisher or subscriber; null means publisher")


class CredentialResponse(BaseModel):
    """Public shape of an issued credential."""
    token: str
    channelName: str
    appId: str
    uid: int
    expiresIn: int

    @classmethod
    def from_credential(cls, credential: Credential) -> "CredentialResponse":
        return cls(
            token=credential.token,
            channelName=credential.channel_name,
            appId=credential.app_id,
            uid=credential.uid,
            expiresIn=credential.ttl_seconds,
        )
