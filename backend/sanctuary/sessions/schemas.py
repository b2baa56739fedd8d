"""Pydantic model for a sanctuary session as seen by the relay."""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Session(BaseModel):
    """A live-audio sanctuary session.

    A missing ``channel_name`` means the session was created without audio
    support.
    """
    id: str = Field(..., min_length=1, description="Opaque session ID")
    channel_name: Optional[str] = Field(default=None, description="Agora channel name")
    is_active: bool = Field(default=True, description="Session has not been ended")
    expires_at: datetime = Field(..., description="Hard expiry (UTC)")
    created_at: datetime = Field(default_factory=utc_now, description="Creation time (UTC)")

    def is_live(self, now: datetime) -> bool:
        """True while active and strictly before expiry."""
        return self.is_active and now < self.expires_at
