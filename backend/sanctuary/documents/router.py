"""Stored file endpoints.

Endpoints:
    GET /api/documents/uploads/{filename} - Verification document (admin only)
    GET /api/documents/avatar/{filename}  - Expert avatar image (public)
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from sanctuary.auth.dependencies import optional_principal
from sanctuary.auth.service import Principal
from sanctuary.config import get_config

from .blob_store import LocalBlobStore, iter_chunks
from .gate import AccessGate, AccessTier, ResourceGrant

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents", tags=["documents"])


def get_access_gate() -> AccessGate:
    return AccessGate(LocalBlobStore(get_config().storage.uploads_dir))


def _stream(grant: ResourceGrant) -> StreamingResponse:
    return StreamingResponse(
        iter_chunks(grant.stream, grant.filename),
        media_type=grant.content_type,
        headers=grant.headers,
    )


@router.get("/uploads/{filename}")
async def get_document(
    filename: str,
    principal: Optional[Principal] = Depends(optional_principal),
    gate: AccessGate = Depends(get_access_gate),
) -> StreamingResponse:
    """Serve an uploaded document inline to an admin."""
    grant = gate.authorize(filename, principal, AccessTier.ADMIN_DOCUMENT)
    return _stream(grant)


@router.get("/avatar/{filename}")
async def get_avatar(
    filename: str,
    gate: AccessGate = Depends(get_access_gate),
) -> StreamingResponse:
    """Serve an avatar image with a one day public cache lifetime."""
    grant = gate.authorize(filename, None, AccessTier.PUBLIC_AVATAR)
    return _stream(grant)
