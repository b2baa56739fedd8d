"""Chat relay: validate, shape and publish messages to a session's room.

The relay has no view of who is in a room. It is handed a publisher at
construction and calls ``publish(room_key, event)`` exactly once per accepted
message. Concurrent sends for the same session are not ordered relative to
each other.

History is not retained, so ``backlog`` always returns an empty page with
``hasMore=False``. Callers depend on that shape; adding persistence needs a
new, separately advertised contract.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from sanctuary.errors import ValidationError

from .hub import RoomPublisher
from .schemas import (
    DEFAULT_BACKLOG_LIMIT,
    MAX_ALIAS_LENGTH,
    MAX_CONTENT_LENGTH,
    MIN_ALIAS_LENGTH,
    Attachment,
    BacklogPage,
    ChatMessage,
    ChatMessageInput,
    DeliveryReceipt,
    MessageKind,
)

logger = logging.getLogger(__name__)

ROOM_KEY_PREFIX = "audio_room_"
NEW_MESSAGE_EVENT = "sanctuary_new_message"


def room_key_for(session_id: str) -> str:
    return f"{ROOM_KEY_PREFIX}{session_id}"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RoomRelay:
    """Validates chat sends and fans them out through a RoomPublisher."""

    def __init__(
        self,
        publisher: RoomPublisher,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._publisher = publisher
        self._clock = clock

    def validate(self, draft: ChatMessageInput) -> ChatMessageInput:
        """Trim and check a draft; returns the normalised copy.

        Raises:
            ValidationError: content over 1000 chars, alias outside 1-50
                chars, or an unknown message type.
        """
        content = (draft.content or "").strip()
        alias = (draft.participantAlias or "").strip()

        if len(content) > MAX_CONTENT_LENGTH:
            raise ValidationError(f"Content must be at most {MAX_CONTENT_LENGTH} characters")
        if not MIN_ALIAS_LENGTH <= len(alias) <= MAX_ALIAS_LENGTH:
            raise ValidationError(
                f"participantAlias must be {MIN_ALIAS_LENGTH}-{MAX_ALIAS_LENGTH} characters"
            )
        try:
            kind = MessageKind(draft.type or MessageKind.TEXT.value)
        except ValueError:
            allowed = ", ".join(k.value for k in MessageKind)
            raise ValidationError(f"Message type must be one of: {allowed}")

        reply_to = draft.replyTo.strip() if draft.replyTo and draft.replyTo.strip() else None
        return ChatMessageInput(
            content=content,
            type=kind.value,
            participantAlias=alias,
            replyTo=reply_to,
        )

    def build_message(
        self,
        session_id: str,
        participant_id: str,
        draft: ChatMessageInput,
        attachment: Optional[Attachment] = None,
    ) -> ChatMessage:
        """Validate *draft* and produce the canonical record."""
        clean = self.validate(draft)
        now = self._clock()
        return ChatMessage(
            id=f"msg_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:12]}",
            sessionId=session_id,
            participantId=participant_id,
            participantAlias=clean.participantAlias,
            content=clean.content,
            type=MessageKind(clean.type),
            timestamp=_iso_timestamp(now),
            attachment=attachment,
            replyTo=clean.replyTo,
        )

    async def send(
        self,
        session_id: str,
        participant_id: str,
        draft: ChatMessageInput,
        attachment: Optional[Attachment] = None,
    ) -> DeliveryReceipt:
        """Validate, build and publish one message to the session's room."""
        message = self.build_message(session_id, participant_id, draft, attachment)
        room_key = room_key_for(session_id)

        recipients = await self._publisher.publish(
            room_key,
            {"type": NEW_MESSAGE_EVENT, "message": message.model_dump(mode="json")},
        )
        logger.info(
            "Message %s sent to %s (type=%s, hasAttachment=%s, recipients=%d)",
            message.id, room_key, message.type.value, message.attachment is not None, recipients,
        )
        return DeliveryReceipt(message=message, roomKey=room_key, recipients=recipients)

    def backlog(
        self,
        session_id: str,
        limit: int = DEFAULT_BACKLOG_LIMIT,
        before: Optional[str] = None,
    ) -> BacklogPage:
        """Always an empty page: history is not retained."""
        return BacklogPage(messages=[], limit=limit, hasMore=False)
