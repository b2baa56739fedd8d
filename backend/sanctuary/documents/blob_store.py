"""Read-only access to the uploads root on local disk."""
import logging
from pathlib import Path
from typing import AsyncIterator, BinaryIO, Protocol

from fastapi.concurrency import run_in_threadpool

from sanctuary.errors import InternalError, ValidationError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class BlobStore(Protocol):
    """Durable storage addressed by a single filename segment."""

    def exists(self, filename: str) -> bool: ...

    def open(self, filename: str) -> BinaryIO: ...


class LocalBlobStore:
    """Files stored directly under ``root``; never writes."""

    def __init__(self, root: str) -> None:
        self._root = Path(root).resolve()

    def _path_for(self, filename: str) -> Path:
        path = (self._root / filename).resolve()
        if path.parent != self._root:
            raise ValidationError("Invalid filename")
        return path

    def exists(self, filename: str) -> bool:
        return self._path_for(filename).is_file()

    def open(self, filename: str) -> BinaryIO:
        try:
            return self._path_for(filename).open("rb")
        except OSError as e:
            logger.error("Failed to open stored file %s: %s", filename, e)
            raise InternalError()


async def iter_chunks(handle: BinaryIO, filename: str) -> AsyncIterator[bytes]:
    """Stream *handle* in bounded chunks, closing it on every exit path.

    Cancellation (client disconnect) surfaces at the ``await`` and still
    reaches the ``finally`` block.
    """
    try:
        while True:
            try:
                chunk = await run_in_threadpool(handle.read, CHUNK_SIZE)
            except OSError as e:
                logger.error("Stream of %s aborted: %s", filename, e)
                raise InternalError()
            if not chunk:
                break
            yield chunk
    finally:
        handle.close()
