"""Local storage for chat media attachments.

Files are stored in: {media_dir}/{session_id}/{uuid}.{ext}
and published as {media_base_url}/{session_id}/{uuid}.{ext}, which the chat
router serves back read-only without authentication.
Content is stored as received; nothing is transcoded or inspected.
"""
import logging
import re
import uuid
from pathlib import Path
from typing import BinaryIO, Iterable, Tuple

from sanctuary.documents.blob_store import LocalBlobStore
from sanctuary.documents.gate import DEFAULT_CONTENT_TYPE, MIME_TYPES, check_filename, extension_of
from sanctuary.errors import InternalError, NotFoundError, ValidationError

from .schemas import Attachment

logger = logging.getLogger(__name__)

_SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class AttachmentStore:
    """Validates and writes one attachment per chat send."""

    def __init__(
        self,
        media_dir: str,
        base_url: str,
        max_bytes: int,
        allowed_extensions: Iterable[str],
    ) -> None:
        self._media_dir = Path(media_dir)
        self._base_url = base_url.rstrip("/")
        self._max_bytes = max_bytes
        self._allowed = {ext.lower().lstrip(".") for ext in allowed_extensions}

    def validate(self, session_id: str, filename: str, size_bytes: int) -> str:
        """Check the upload before anything is written.

        Returns:
            The normalised extension including the leading dot.

        Raises:
            ValidationError: bad session id, disallowed extension or too large.
        """
        _check_session_id(session_id)
        ext = Path(filename or "").suffix.lower()
        if ext.lstrip(".") not in self._allowed:
            allowed = ", ".join(sorted(self._allowed))
            raise ValidationError(f"Attachment type not allowed (allowed: {allowed})")
        if size_bytes > self._max_bytes:
            raise ValidationError(
                f"Attachment size ({size_bytes} bytes) exceeds limit ({self._max_bytes} bytes)"
            )
        return ext

    def save(
        self,
        session_id: str,
        filename: str,
        content: bytes,
        mime_type: str,
    ) -> Attachment:
        """Validate, write to disk and describe the stored file."""
        ext = self.validate(session_id, filename, len(content))
        stored_filename = f"{uuid.uuid4()}{ext}"

        session_dir = self._media_dir / session_id
        try:
            session_dir.mkdir(parents=True, exist_ok=True)
            (session_dir / stored_filename).write_bytes(content)
        except OSError as e:
            logger.error("Failed to store attachment for session %s: %s", session_id, e)
            raise InternalError("Failed to store attachment")

        logger.info("Stored attachment %s (%d bytes) for session %s", stored_filename, len(content), session_id)
        return Attachment(
            url=f"{self._base_url}/{session_id}/{stored_filename}",
            fileName=filename,
            fileType=mime_type or "application/octet-stream",
            fileSize=len(content),
        )

    def open(self, session_id: str, stored_filename: str) -> Tuple[BinaryIO, str]:
        """Open a stored attachment and infer its media type from the extension.

        Raises:
            ValidationError: session id or file name is not a plain segment.
            NotFoundError: nothing is stored under that name.
        """
        _check_session_id(session_id)
        check_filename(stored_filename)
        store = LocalBlobStore(str(self._media_dir / session_id))
        if not store.exists(stored_filename):
            raise NotFoundError("File not found")
        content_type = MIME_TYPES.get(extension_of(stored_filename), DEFAULT_CONTENT_TYPE)
        return store.open(stored_filename), content_type


def _check_session_id(session_id: str) -> None:
    if not _SEGMENT_PATTERN.match(session_id or ""):
        raise ValidationError("Invalid session ID")
