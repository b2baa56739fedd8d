"""Credential issuance bound to sessions or channels.

``issue_for_session`` and ``issue_for_channel`` are separate entry points.
The channel path skips the session lookup and is never reached through the
session path.
"""
import logging
import time
from typing import Callable

from agora_token_builder import RtcTokenBuilder
from agora_token_builder.RtcTokenBuilder import Role_Publisher, Role_Subscriber

from sanctuary.config import AgoraSecrets
from sanctuary.errors import ConfigurationError, InternalError, ValidationError
from sanctuary.sessions.authority import SessionAuthority
from sanctuary.sessions.schemas import Session

from .schemas import PUBLISHER_ROLE, Credential

logger = logging.getLogger(__name__)

SESSION_TTL_SECONDS = 3600
REFRESH_TTL_SECONDS = 7200


def rtc_role_for(role: str) -> int:
    """Publishers may send media; every other role only joins."""
    return Role_Publisher if role == PUBLISHER_ROLE else Role_Subscriber


class CredentialIssuer:
    """Mints Agora RTC credentials from the configured signing secrets.

    Args:
        secrets_provider: Returns the current signing config; read on every
            call so a reloaded config takes effect immediately.
        clock: Unix-seconds clock.
    """

    def __init__(
        self,
        secrets_provider: Callable[[], AgoraSecrets],
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secrets_provider = secrets_provider
        self._clock = clock

    def ensure_configured(self) -> AgoraSecrets:
        """Raise ConfigurationError unless app id and certificate are usable."""
        secrets = self._secrets_provider()
        if not secrets.is_present:
            raise ConfigurationError()
        if not secrets.is_well_formed:
            logger.error("Agora signing configuration is malformed")
            raise ConfigurationError("Agora service misconfigured")
        return secrets

    def issue_for_session(
        self,
        session: Session,
        participant_id: int = 0,
        role: str = PUBLISHER_ROLE,
    ) -> Credential:
        """Issue a 1 hour credential for a session already resolved as live."""
        secrets = self.ensure_configured()
        channel_name = SessionAuthority.require_channel(session)
        return self._mint(secrets, channel_name, participant_id, role, SESSION_TTL_SECONDS)

    def issue_for_channel(
        self,
        channel_name: str,
        participant_id: int = 0,
        role: str = PUBLISHER_ROLE,
    ) -> Credential:
        """Issue a 2 hour credential for a caller-supplied channel.

        No session lookup happens here; only expose this where a
        reconnecting client refreshing its own credential is acceptable.
        """
        secrets = self.ensure_configured()
        if not channel_name or not channel_name.strip():
            raise ValidationError("Channel name is required")
        return self._mint(secrets, channel_name, participant_id, role, REFRESH_TTL_SECONDS)

    def status(self) -> dict:
        """Whether signing is configured and which features that enables."""
        secrets = self._secrets_provider()
        configured = secrets.is_present
        return {
            "configured": configured,
            "appId": secrets.app_id if configured else None,
            "features": {
                "audioCall": configured,
                "videoCall": configured,
                "screenShare": configured,
                "recording": configured,
            },
        }

    def _mint(
        self,
        secrets: AgoraSecrets,
        channel_name: str,
        participant_id: int,
        role: str,
        ttl_seconds: int,
    ) -> Credential:
        role = role or PUBLISHER_ROLE
        participant_id = participant_id or 0
        issued_at = int(self._clock())
        try:
            token = RtcTokenBuilder.buildTokenWithUid(
                secrets.app_id,
                secrets.app_certificate,
                channel_name,
                participant_id,
                rtc_role_for(role),
                issued_at + ttl_seconds,
            )
        except Exception as e:
            logger.error("Agora token generation failed for channel %s: %s", channel_name, e)
            raise InternalError("Failed to generate Agora token")

        logger.info(
            "Issued RTC credential channel=%s uid=%s role=%s ttl=%ss",
            channel_name, participant_id, role, ttl_seconds,
        )
        return Credential(
            token=token,
            channel_name=channel_name,
            app_id=secrets.app_id,
            uid=participant_id,
            role=role,
            ttl_seconds=ttl_seconds,
            issued_at=issued_at,
        )
