"""Resolve a session id to a live session before credential issuance."""
import logging
from datetime import datetime
from typing import Callable, Optional

from sanctuary.errors import FeatureUnsupportedError, NotFoundError

from .schemas import Session, utc_now
from .store import SessionStore

logger = logging.getLogger(__name__)


class SessionAuthority:
    """Applies the liveness rules on top of the session store.

    Inactive, expired and unknown sessions are indistinguishable to the
    caller. No caching: every call re-reads the store.
    """

    def __init__(
        self,
        store: SessionStore,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._clock = clock

    def resolve(self, session_id: Optional[str]) -> Session:
        """Return the live session or raise NotFoundError."""
        if not session_id:
            raise NotFoundError("Sanctuary session not found or expired")
        session = self._store.get(session_id)
        if session is None or not session.is_live(self._clock()):
            logger.info("Session %s not found, inactive or expired", session_id)
            raise NotFoundError("Sanctuary session not found or expired")
        return session

    @staticmethod
    def require_channel(session: Session) -> str:
        """Return the session's channel or raise FeatureUnsupportedError."""
        if not session.channel_name:
            raise FeatureUnsupportedError()
        return session.channel_name
