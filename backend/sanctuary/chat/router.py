"""Flagship chat router providing HTTP and WebSocket endpoints.

This module provides:
    - POST /api/flagship-chat/sessions/{session_id}/messages: Send a message
    - GET /api/flagship-chat/sessions/{session_id}/messages: Backlog (always empty)
    - WebSocket /ws/sessions/{session_id}: Subscribe to a session's audio room
    - GET /media/flagship-chat/{session_id}/{filename}: Stored attachment (public)

Send accepts either a JSON body or form data with an optional
``attachment`` file field. Every check runs before the attachment is written
or anything is published.
"""
import logging
from typing import Any, Dict, Optional, Tuple

import pydantic
from fastapi import APIRouter, Depends, Query, Request, WebSocket, WebSocketDisconnect, status
from fastapi.responses import StreamingResponse
from starlette.datastructures import UploadFile

from sanctuary.auth.dependencies import require_principal
from sanctuary.auth.service import Principal, decode_token
from sanctuary.config import get_config
from sanctuary.documents.blob_store import iter_chunks
from sanctuary.errors import AuthenticationError, ValidationError, success

from .attachments import AttachmentStore
from .hub import RoomHub, hub
from .relay import RoomRelay, room_key_for
from .schemas import DEFAULT_BACKLOG_LIMIT, MAX_BACKLOG_LIMIT, Attachment, ChatMessageInput

logger = logging.getLogger(__name__)

router = APIRouter(tags=["flagship-chat"])

_DRAFT_FIELDS = ("content", "type", "participantAlias", "replyTo")

# Default chat.media_base_url; attachment URLs resolve here.
MEDIA_ROUTE = "/media/flagship-chat"


def get_hub() -> RoomHub:
    return hub


def get_relay(room_hub: RoomHub = Depends(get_hub)) -> RoomRelay:
    return RoomRelay(room_hub)


def get_attachment_store() -> AttachmentStore:
    chat = get_config().chat
    return AttachmentStore(
        media_dir=chat.media_dir,
        base_url=chat.media_base_url,
        max_bytes=chat.max_attachment_bytes,
        allowed_extensions=chat.allowed_attachment_extensions,
    )


def _draft_from(fields: Dict[str, Any]) -> ChatMessageInput:
    data = {key: fields[key] for key in _DRAFT_FIELDS if fields.get(key) is not None}
    try:
        return ChatMessageInput(**data)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise ValidationError(f"{location}: {first.get('msg', 'invalid value')}")


async def _read_send_request(request: Request) -> Tuple[ChatMessageInput, Optional[UploadFile]]:
    """Parse a send request from JSON or form data."""
    content_type = request.headers.get("content-type", "")

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        upload = form.get("attachment")
        fields = {k: v for k, v in form.items() if isinstance(v, str)}
        if not isinstance(upload, UploadFile) or not upload.filename:
            upload = None
        return _draft_from(fields), upload

    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Request body must be JSON or form data")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return _draft_from(body), None


@router.post("/api/flagship-chat/sessions/{session_id}/messages")
async def send_message(
    session_id: str,
    request: Request,
    principal: Principal = Depends(require_principal),
    relay: RoomRelay = Depends(get_relay),
    attachments: AttachmentStore = Depends(get_attachment_store),
) -> dict:
    """Send a message (optionally with one attachment) to the session's room."""
    draft, upload = await _read_send_request(request)
    draft = relay.validate(draft)

    attachment: Optional[Attachment] = None
    if upload is not None:
        try:
            # Reported size is checked before the body is pulled into memory.
            attachments.validate(session_id, upload.filename, upload.size or 0)
            content = await upload.read()
        finally:
            await upload.close()
        attachment = attachments.save(
            session_id=session_id,
            filename=upload.filename,
            content=content,
            mime_type=upload.content_type or "application/octet-stream",
        )

    receipt = await relay.send(session_id, principal.id, draft, attachment)
    message = receipt.message
    return success(
        {
            "message": {
                "id": message.id,
                "participantAlias": message.participantAlias,
                "content": message.content,
                "type": message.type.value,
                "timestamp": message.timestamp,
                "attachment": message.attachment.model_dump() if message.attachment else None,
                "replyTo": message.replyTo,
            }
        },
        "Message sent successfully",
    )


@router.get("/api/flagship-chat/sessions/{session_id}/messages")
async def get_messages(
    session_id: str,
    limit: int = Query(DEFAULT_BACKLOG_LIMIT, ge=1, le=MAX_BACKLOG_LIMIT, description="Page size"),
    before: Optional[str] = Query(None, description="Cursor (ignored)"),
    principal: Principal = Depends(require_principal),
    relay: RoomRelay = Depends(get_relay),
) -> dict:
    """Return the backlog, which is always empty: messages are real-time only."""
    page = relay.backlog(session_id, limit=limit, before=before)
    return success(
        {
            "messages": [m.model_dump(mode="json") for m in page.messages],
            "pagination": {"limit": page.limit, "hasMore": page.hasMore},
        },
        "Messages retrieved successfully",
    )


@router.get(MEDIA_ROUTE + "/{session_id}/{filename}")
async def get_attachment(
    session_id: str,
    filename: str,
    attachments: AttachmentStore = Depends(get_attachment_store),
) -> StreamingResponse:
    """Serve a stored chat attachment at the URL published with its message."""
    handle, content_type = attachments.open(session_id, filename)
    return StreamingResponse(iter_chunks(handle, filename), media_type=content_type)


@router.websocket("/ws/sessions/{session_id}")
async def session_room_endpoint(
    websocket: WebSocket,
    session_id: str,
    room_hub: RoomHub = Depends(get_hub),
) -> None:
    """Subscribe a socket to a session's audio room until it disconnects.

    The caller token comes from the ``token`` query parameter or the
    ``x-auth-token`` header; without a valid one the socket is closed with
    1008 before it joins any room.

    Incoming frames are ignored except ``{"type": "ping"}``, which is
    answered with ``{"type": "pong"}``.
    """
    token = websocket.query_params.get("token") or websocket.headers.get("x-auth-token")
    try:
        if not token:
            raise AuthenticationError("No token, authorization denied")
        principal = decode_token(token)
    except AuthenticationError as e:
        logger.info("[WS] Rejected socket for session %s: %s", session_id, e.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    room_key = room_key_for(session_id)
    await room_hub.connect(websocket, room_key)
    logger.debug("[WS] User %s subscribed to %s", principal.id, room_key)
    await websocket.send_json({"type": "joined", "room": room_key, "sessionId": session_id})

    try:
        while True:
            try:
                data = await websocket.receive_json()
            except ValueError:
                continue
            if isinstance(data, dict) and data.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        room_hub.disconnect(websocket, room_key)
        logger.info("[WS] Socket left %s", room_key)
