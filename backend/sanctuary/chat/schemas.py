"""Pydantic models for flagship chat messages."""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

MAX_CONTENT_LENGTH = 1000
MIN_ALIAS_LENGTH = 1
MAX_ALIAS_LENGTH = 50

DEFAULT_BACKLOG_LIMIT = 50
MAX_BACKLOG_LIMIT = 100


class MessageKind(str, Enum):
    """Type of chat message.

    Attributes:
        TEXT: Plain text message.
        EMOJI_REACTION: A reaction sent as a message.
        MEDIA: Message carrying an attachment.
    """
    TEXT = "text"
    EMOJI_REACTION = "emoji-reaction"
    MEDIA = "media"


class Attachment(BaseModel):
    """Stored media attached to a message."""
    url: str = Field(..., description="Where the stored file can be fetched")
    fileName: str = Field(..., description="Original file name")
    fileType: str = Field(..., description="Media type reported by the uploader")
    fileSize: int = Field(..., ge=0, description="Size in bytes")


class ChatMessageInput(BaseModel):
    """Client-supplied fields of a send request.

    The server adds id, sessionId, participantId and timestamp. Lengths are
    checked by the relay after trimming, not here.
    """
    content: str = Field(default="", description="Message text")
    type: str = Field(default=MessageKind.TEXT.value, description="text, emoji-reaction or media")
    participantAlias: str = Field(default="", description="Sender display alias")
    replyTo: Optional[str] = Field(default=None, description="ID of the message replied to")


class ChatMessage(BaseModel):
    """Canonical message record broadcast to the room."""
    id: str = Field(..., description="Unique message ID")
    sessionId: str = Field(..., description="Session the message belongs to")
    participantId: str = Field(..., description="Sender user ID")
    participantAlias: str = Field(..., description="Sender display alias")
    content: str = Field(default="", description="Trimmed message text")
    type: MessageKind = Field(default=MessageKind.TEXT, description="Message kind")
    timestamp: str = Field(..., description="ISO-8601 send time (UTC)")
    attachment: Optional[Attachment] = Field(default=None, description="Optional media")
    replyTo: Optional[str] = Field(default=None, description="ID of the message replied to")


class DeliveryReceipt(BaseModel):
    """Acknowledges that a publish was attempted, not that it was received."""
    message: ChatMessage
    roomKey: str
    recipients: int = Field(..., description="Subscribers a send was attempted to")


class BacklogPage(BaseModel):
    messages: List[ChatMessage] = Field(default_factory=list)
    limit: int = DEFAULT_BACKLOG_LIMIT
    hasMore: bool = False
