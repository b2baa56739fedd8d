"""Tests for the flagship chat HTTP and WebSocket endpoints."""
from pathlib import Path

import pytest
from starlette.datastructures import UploadFile
from starlette.websockets import WebSocketDisconnect

from sanctuary.auth.service import Principal, issue_token
from sanctuary.chat.hub import hub
from sanctuary.chat.router import get_hub
from sanctuary.main import app

URL = "/api/flagship-chat/sessions/s1/messages"


class StubPublisher:
    def __init__(self):
        self.calls = []

    async def publish(self, room_key, message):
        self.calls.append((room_key, message))
        return 1


@pytest.fixture
def publisher():
    stub = StubPublisher()
    app.dependency_overrides[get_hub] = lambda: stub
    return stub


class TestSendJson:
    def test_send_text_message(self, api_client, auth_headers, publisher):
        response = api_client.post(
            URL,
            json={"content": "  hello  ", "participantAlias": "Quiet Owl"},
            headers=auth_headers(user_id="user-7"),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Message sent successfully"
        message = body["data"]["message"]
        assert message["content"] == "hello"
        assert message["participantAlias"] == "Quiet Owl"
        assert message["type"] == "text"
        assert message["attachment"] is None
        assert message["replyTo"] is None
        assert message["id"].startswith("msg_")
        assert message["timestamp"].endswith("Z")

        assert len(publisher.calls) == 1
        room_key, event = publisher.calls[0]
        assert room_key == "audio_room_s1"
        assert event["type"] == "sanctuary_new_message"
        assert event["message"]["id"] == message["id"]
        assert event["message"]["participantId"] == "user-7"
        assert event["message"]["sessionId"] == "s1"

    def test_reply_and_reaction(self, api_client, auth_headers, publisher):
        response = api_client.post(
            URL,
            json={"content": "+1", "type": "emoji-reaction", "participantAlias": "Owl", "replyTo": "msg_1_a"},
            headers=auth_headers(),
        )
        assert response.status_code == 200
        message = response.json()["data"]["message"]
        assert message["type"] == "emoji-reaction"
        assert message["replyTo"] == "msg_1_a"

    def test_requires_token(self, api_client, publisher):
        response = api_client.post(URL, json={"content": "hi", "participantAlias": "Owl"})
        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "error": "No token, authorization denied",
            "kind": "authentication_error",
        }
        assert publisher.calls == []

    def test_expired_token(self, api_client, publisher):
        token = issue_token(Principal(id="user-1"), expires_in=-10)
        response = api_client.post(
            URL, json={"content": "hi", "participantAlias": "Owl"}, headers={"x-auth-token": token}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "Token has expired"

    def test_content_too_long(self, api_client, auth_headers, publisher):
        response = api_client.post(
            URL,
            json={"content": "a" * 1001, "participantAlias": "Owl"},
            headers=auth_headers(),
        )
        assert response.status_code == 400
        assert response.json()["kind"] == "validation_error"
        assert publisher.calls == []

    def test_missing_alias(self, api_client, auth_headers, publisher):
        response = api_client.post(URL, json={"content": "hi"}, headers=auth_headers())
        assert response.status_code == 400
        assert publisher.calls == []

    def test_unknown_type(self, api_client, auth_headers, publisher):
        response = api_client.post(
            URL, json={"content": "hi", "participantAlias": "Owl", "type": "video"}, headers=auth_headers()
        )
        assert response.status_code == 400

    def test_non_object_body(self, api_client, auth_headers, publisher):
        response = api_client.post(URL, json=["hi"], headers=auth_headers())
        assert response.status_code == 400
        assert publisher.calls == []


class TestSendMultipart:
    def test_attachment_saved_and_echoed(self, api_client, auth_headers, publisher, app_config):
        response = api_client.post(
            URL,
            data={"content": "look", "participantAlias": "Owl", "type": "media"},
            files={"attachment": ("photo.png", b"\x89PNG data", "image/png")},
            headers=auth_headers(),
        )

        assert response.status_code == 200
        attachment = response.json()["data"]["message"]["attachment"]
        assert attachment["fileName"] == "photo.png"
        assert attachment["fileType"] == "image/png"
        assert attachment["fileSize"] == len(b"\x89PNG data")
        assert attachment["url"].startswith("/media/flagship-chat/s1/")
        assert attachment["url"].endswith(".png")

        stored = Path(app_config.chat.media_dir) / "s1" / attachment["url"].rsplit("/", 1)[1]
        assert stored.read_bytes() == b"\x89PNG data"
        assert publisher.calls[0][1]["message"]["attachment"] == attachment

    def test_urlencoded_form_without_file(self, api_client, auth_headers, publisher):
        response = api_client.post(
            URL,
            data={"content": "just text", "participantAlias": "Owl"},
            headers=auth_headers(),
        )
        assert response.status_code == 200
        assert response.json()["data"]["message"]["attachment"] is None

    def test_disallowed_extension(self, api_client, auth_headers, publisher, app_config):
        response = api_client.post(
            URL,
            data={"content": "run me", "participantAlias": "Owl"},
            files={"attachment": ("evil.exe", b"MZ", "application/octet-stream")},
            headers=auth_headers(),
        )
        assert response.status_code == 400
        assert "not allowed" in response.json()["error"]
        assert publisher.calls == []
        assert not (Path(app_config.chat.media_dir) / "s1").exists()

    def test_oversize_attachment(self, api_client, auth_headers, publisher, app_config):
        app_config.chat.max_attachment_bytes = 10
        response = api_client.post(
            URL,
            data={"content": "big", "participantAlias": "Owl"},
            files={"attachment": ("big.png", b"x" * 11, "image/png")},
            headers=auth_headers(),
        )
        assert response.status_code == 400
        assert "exceeds limit" in response.json()["error"]
        assert publisher.calls == []

    def test_oversize_attachment_is_rejected_before_reading(
        self, api_client, auth_headers, publisher, app_config, monkeypatch
    ):
        async def fail_read(self, size=-1):
            raise AssertionError("attachment body was read")

        monkeypatch.setattr(UploadFile, "read", fail_read)
        app_config.chat.max_attachment_bytes = 10
        response = api_client.post(
            URL,
            data={"content": "big", "participantAlias": "Owl"},
            files={"attachment": ("big.png", b"x" * 11, "image/png")},
            headers=auth_headers(),
        )
        assert response.status_code == 400
        assert "exceeds limit" in response.json()["error"]

    def test_invalid_message_does_not_store_attachment(self, api_client, auth_headers, publisher, app_config):
        response = api_client.post(
            URL,
            data={"content": "a" * 1001, "participantAlias": "Owl"},
            files={"attachment": ("photo.png", b"png", "image/png")},
            headers=auth_headers(),
        )
        assert response.status_code == 400
        assert not (Path(app_config.chat.media_dir) / "s1").exists()

    def test_session_id_unsafe_for_storage(self, api_client, auth_headers, publisher):
        response = api_client.post(
            "/api/flagship-chat/sessions/s.1/messages",
            data={"content": "x", "participantAlias": "Owl"},
            files={"attachment": ("photo.png", b"png", "image/png")},
            headers=auth_headers(),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid session ID"


class TestBacklog:
    def test_always_empty(self, api_client, auth_headers):
        response = api_client.get(URL, params={"limit": 20}, headers=auth_headers())
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": {"messages": [], "pagination": {"limit": 20, "hasMore": False}},
            "message": "Messages retrieved successfully",
        }

    def test_default_limit(self, api_client, auth_headers):
        response = api_client.get(URL, headers=auth_headers())
        assert response.json()["data"]["pagination"] == {"limit": 50, "hasMore": False}

    @pytest.mark.parametrize("limit", [0, 101])
    def test_limit_out_of_range(self, api_client, auth_headers, limit):
        response = api_client.get(URL, params={"limit": limit}, headers=auth_headers())
        assert response.status_code == 400
        assert response.json()["kind"] == "validation_error"

    def test_requires_token(self, api_client):
        assert api_client.get(URL).status_code == 401


class TestAttachmentDownload:
    def test_published_url_serves_the_stored_bytes(self, api_client, auth_headers, publisher):
        sent = api_client.post(
            URL,
            data={"content": "look", "participantAlias": "Owl", "type": "media"},
            files={"attachment": ("photo.png", b"\x89PNG data", "image/png")},
            headers=auth_headers(),
        )
        url = sent.json()["data"]["message"]["attachment"]["url"]

        response = api_client.get(url)

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content == b"\x89PNG data"

    def test_unknown_attachment_is_not_found(self, api_client):
        response = api_client.get("/media/flagship-chat/s1/nothing.png")
        assert response.status_code == 404
        assert response.json()["error"] == "File not found"

    def test_unsafe_session_segment(self, api_client):
        response = api_client.get("/media/flagship-chat/s.1/photo.png")
        assert response.status_code == 400


class TestSessionRoomSocket:
    def test_join_and_ping(self, api_client, auth_headers):
        with api_client.websocket_connect("/ws/sessions/s1", headers=auth_headers()) as ws:
            joined = ws.receive_json()
            assert joined == {"type": "joined", "room": "audio_room_s1", "sessionId": "s1"}
            assert hub.get_room_size("audio_room_s1") == 1

            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_token_query_parameter(self, api_client, app_config):
        token = issue_token(Principal(id="user-3"))
        with api_client.websocket_connect(f"/ws/sessions/s1?token={token}") as ws:
            assert ws.receive_json()["type"] == "joined"

    @pytest.mark.parametrize(
        "headers",
        [{}, {"x-auth-token": "not.a.jwt"}],
    )
    def test_socket_without_valid_token_is_closed(self, api_client, headers):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with api_client.websocket_connect("/ws/sessions/s1", headers=headers) as ws:
                ws.receive_json()
        assert exc_info.value.code == 1008
        assert hub.get_room_size("audio_room_s1") == 0

    def test_expired_token_is_closed(self, api_client, app_config):
        token = issue_token(Principal(id="user-1"), expires_in=-10)
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with api_client.websocket_connect(f"/ws/sessions/s1?token={token}") as ws:
                ws.receive_json()
        assert exc_info.value.code == 1008

    def test_unknown_frames_ignored(self, api_client, auth_headers):
        with api_client.websocket_connect("/ws/sessions/s2", headers=auth_headers()) as ws:
            ws.receive_json()
            ws.send_text("not json")
            ws.send_json({"type": "chatter"})
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_rooms_are_per_session(self, api_client, auth_headers):
        with api_client.websocket_connect("/ws/sessions/a", headers=auth_headers()) as ws_a, \
             api_client.websocket_connect("/ws/sessions/b", headers=auth_headers()) as ws_b:
            ws_a.receive_json()
            ws_b.receive_json()
            assert hub.get_room_size("audio_room_a") == 1
            assert hub.get_room_size("audio_room_b") == 1
