"""Tiered authorization for stored files.

Resolution order, identical for every request:
    1. filename must be a single path segment inside the uploads root
    2. tier rules (admin role for documents, image extension for avatars)
    3. existence on the backing store
Only after all three pass is a handle opened.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import BinaryIO, Dict, FrozenSet, Optional

from sanctuary.auth.service import Principal
from sanctuary.errors import (
    AuthenticationError,
    AuthorizationError,
    InvalidFormatError,
    NotFoundError,
    ValidationError,
)

from .blob_store import BlobStore

logger = logging.getLogger(__name__)


class AccessTier(str, Enum):
    ADMIN_DOCUMENT = "admin-only-document"
    PUBLIC_AVATAR = "public-avatar"


DEFAULT_CONTENT_TYPE = "application/octet-stream"

MIME_TYPES: Dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
}

# Documents outside this set are still served, as octet-stream.
DOCUMENT_EXTENSIONS: FrozenSet[str] = frozenset({".jpg", ".jpeg", ".png", ".pdf", ".doc", ".docx"})
AVATAR_EXTENSIONS: FrozenSet[str] = frozenset({".jpg", ".jpeg", ".png", ".gif"})

AVATAR_CACHE_CONTROL = "public, max-age=86400"


@dataclass
class ResourceGrant:
    """An authorized, opened file ready to stream."""
    filename: str
    content_type: str
    stream: BinaryIO
    headers: Dict[str, str] = field(default_factory=dict)


def extension_of(filename: str) -> str:
    return PurePosixPath(filename).suffix.lower()


def check_filename(filename: str) -> str:
    """Reject anything that is not a plain file name."""
    if (
        not filename
        or filename in (".", "..")
        or "/" in filename
        or "\\" in filename
        or "\x00" in filename
    ):
        raise ValidationError("Invalid filename")
    return filename


class AccessGate:
    """Checks a stored-file request against its tier before opening it."""

    def __init__(self, store: BlobStore) -> None:
        self._store = store

    def authorize(
        self,
        filename: str,
        principal: Optional[Principal],
        tier: AccessTier,
    ) -> ResourceGrant:
        check_filename(filename)
        ext = extension_of(filename)

        if tier == AccessTier.ADMIN_DOCUMENT:
            if principal is None:
                raise AuthenticationError("No token, authorization denied")
            if not principal.is_admin:
                logger.warning("Denied document %s to user %s (role=%s)", filename, principal.id, principal.role)
                raise AuthorizationError()
            content_type = MIME_TYPES[ext] if ext in DOCUMENT_EXTENSIONS else DEFAULT_CONTENT_TYPE
            headers = {"Content-Disposition": "inline"}
        else:
            if ext not in AVATAR_EXTENSIONS:
                raise InvalidFormatError()
            content_type = MIME_TYPES[ext]
            headers = {"Cache-Control": AVATAR_CACHE_CONTROL}

        if not self._store.exists(filename):
            raise NotFoundError("File not found")

        return ResourceGrant(
            filename=filename,
            content_type=content_type,
            stream=self._store.open(filename),
            headers=headers,
        )
