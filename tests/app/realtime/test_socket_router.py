"""Tests for the /ws realtime endpoint."""

from datetime import datetime, timezone
from unittest.mock import patch
from uuid import uuid4

import jwt
import pytest
from starlette.websockets import WebSocketDisconnect

from app.auth.tokens import issue_token
from app.config import get_settings
from app.models.message import Message
from app.realtime.socket_router import UNAUTHORIZED_CLOSE_CODE, SocketSession


def ws_url(user):
    return f"/ws?token={issue_token(user)}"


def join(ws, conversation_id):
    ws.send_json({"event": "join:conversation", "data": str(conversation_id)})
    frame = ws.receive_json()
    assert frame == {
        "event": "conversation:joined",
        "data": {"conversationId": str(conversation_id)},
    }


def test_connect_sends_ready(client, setup_attendant):
    with client.websocket_connect(ws_url(setup_attendant)) as ws:
        frame = ws.receive_json()
    assert frame["event"] == "connection:ready"
    assert frame["data"]["user"] == {
        "id": str(setup_attendant.id),
        "email": setup_attendant.email,
        "role": "attendant",
        "name": setup_attendant.name,
    }


def test_connect_with_authorization_header(client, auth_headers, setup_client_user):
    with client.websocket_connect("/ws", headers=auth_headers(setup_client_user)) as ws:
        frame = ws.receive_json()
    assert frame["data"]["user"]["id"] == str(setup_client_user.id)


@pytest.mark.parametrize("query", ["", "?token=", "?token=not-a-jwt"])
def test_connect_without_valid_token_is_rejected(client, query):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect(f"/ws{query}") as ws:
            ws.receive_json()
    assert exc.value.code == UNAUTHORIZED_CLOSE_CODE


def test_connect_with_expired_token_is_rejected(client, setup_client_user):
    settings = get_settings()
    expired = jwt.encode(
        {
            "sub": str(setup_client_user.id),
            "role": "client",
            "exp": datetime(2000, 1, 1, tzinfo=timezone.utc),
        },
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect(f"/ws?token={expired}") as ws:
            ws.receive_json()
    assert exc.value.code == UNAUTHORIZED_CLOSE_CODE


def test_rejected_socket_is_accepted_before_close(client):
    with client.websocket_connect("/ws?token=not-a-jwt") as ws:
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_json()
    assert exc.value.code == UNAUTHORIZED_CLOSE_CODE


def test_joined_socket_receives_each_message_once(
    client, auth_headers, setup_active_conversation, setup_attendant
):
    conversation_id = setup_active_conversation.id
    client_user = setup_active_conversation.client
    with client.websocket_connect(ws_url(setup_attendant)) as ws:
        assert ws.receive_json()["event"] == "connection:ready"
        join(ws, conversation_id)

        r = client.post(
            "/messages",
            json={"conversationId": str(conversation_id), "content": "Hello?"},
            headers=auth_headers(client_user),
        )
        assert r.status_code == 201

        frame = ws.receive_json()
        assert frame["event"] == "message:new"
        assert frame["data"]["id"] == r.json()["id"]
        assert frame["data"]["content"] == "Hello?"
        assert frame["data"]["sender"] == {
            "id": str(client_user.id),
            "name": client_user.name,
        }

        # The next frame is the join ack, not a duplicate broadcast.
        join(ws, conversation_id)


def test_left_socket_stops_receiving(
    client, auth_headers, setup_active_conversation, setup_attendant
):
    conversation_id = setup_active_conversation.id
    with client.websocket_connect(ws_url(setup_attendant)) as ws:
        ws.receive_json()
        join(ws, conversation_id)
        ws.send_json({"event": "leave:conversation", "data": str(conversation_id)})
        join(ws, uuid4())

        r = client.post(
            "/messages",
            json={"conversationId": str(conversation_id), "content": "ping"},
            headers=auth_headers(setup_active_conversation.client),
        )
        assert r.status_code == 201
        join(ws, conversation_id)


def test_typing_is_relayed_to_others_only(
    client, setup_active_conversation, setup_attendant
):
    conversation_id = str(setup_active_conversation.id)
    client_user = setup_active_conversation.client
    with client.websocket_connect(ws_url(client_user)) as client_ws, \
            client.websocket_connect(ws_url(setup_attendant)) as attendant_ws:
        client_ws.receive_json()
        attendant_ws.receive_json()
        join(client_ws, conversation_id)
        join(attendant_ws, conversation_id)

        client_ws.send_json(
            {"event": "typing:start", "data": {"conversationId": conversation_id}}
        )
        frame = attendant_ws.receive_json()
        assert frame == {
            "event": "typing:user",
            "data": {
                "conversationId": conversation_id,
                "user": {"id": str(client_user.id), "name": client_user.name},
            },
        }

        client_ws.send_json({"event": "typing:stop", "data": conversation_id})
        frame = attendant_ws.receive_json()
        assert frame == {
            "event": "typing:stop",
            "data": {"conversationId": conversation_id, "userId": str(client_user.id)},
        }

        join(client_ws, conversation_id)


def test_message_send_is_persisted_and_broadcast(
    client, db, dispatcher, setup_active_conversation, setup_attendant
):
    conversation_id = str(setup_active_conversation.id)
    client_user = setup_active_conversation.client
    with client.websocket_connect(ws_url(client_user)) as client_ws, \
            client.websocket_connect(ws_url(setup_attendant)) as attendant_ws:
        client_ws.receive_json()
        attendant_ws.receive_json()
        join(attendant_ws, conversation_id)

        client_ws.send_json(
            {
                "event": "message:send",
                "data": {"conversationId": conversation_id, "content": "via socket"},
            }
        )
        frame = attendant_ws.receive_json()
        assert frame["event"] == "message:new"
        assert frame["data"]["content"] == "via socket"
        assert frame["data"]["sender"]["id"] == str(client_user.id)

    stored = db.query(Message).filter(Message.content == "via socket").all()
    assert len(stored) == 1
    assert str(stored[0].id) == frame["data"]["id"]
    assert "message.created" in dispatcher.names


def test_message_send_is_authorized(client, db, setup_conversation):
    """A client cannot push into its own conversation before it is assigned."""
    with client.websocket_connect(ws_url(setup_conversation.client)) as ws:
        ws.receive_json()
        ws.send_json(
            {
                "event": "message:send",
                "data": {
                    "conversationId": str(setup_conversation.id),
                    "content": "hello",
                },
            }
        )
        frame = ws.receive_json()
    assert frame == {
        "event": "error",
        "data": {
            "event": "message:send",
            "status": 400,
            "detail": "Conversation is not active",
        },
    }
    assert db.query(Message).count() == 0


def test_message_send_to_stranger_conversation(
    client, setup_active_conversation, setup_other_client
):
    with client.websocket_connect(ws_url(setup_other_client)) as ws:
        ws.receive_json()
        ws.send_json(
            {
                "event": "message:send",
                "data": {
                    "conversationId": str(setup_active_conversation.id),
                    "content": "let me in",
                },
            }
        )
        frame = ws.receive_json()
    assert frame["event"] == "error"
    assert frame["data"]["status"] == 403


def test_message_send_unknown_conversation(client, setup_client_user):
    with client.websocket_connect(ws_url(setup_client_user)) as ws:
        ws.receive_json()
        ws.send_json(
            {
                "event": "message:send",
                "data": {"conversationId": str(uuid4()), "content": "hi"},
            }
        )
        frame = ws.receive_json()
    assert frame["data"]["status"] == 404


def test_bad_frames_get_error_events(client, setup_client_user):
    with client.websocket_connect(ws_url(setup_client_user)) as ws:
        ws.receive_json()
        ws.send_text("not json")
        malformed = ws.receive_json()
        ws.send_json({"event": "dance", "data": None})
        unknown = ws.receive_json()
        ws.send_json({"event": "message:send", "data": {"content": "no target"}})
        invalid = ws.receive_json()
        ws.send_json({"event": "join:conversation", "data": {}})
        no_id = ws.receive_json()

    assert malformed["data"]["detail"] == "Malformed frame"
    assert unknown["data"] == {"event": "dance", "status": 400, "detail": "Unknown event"}
    assert invalid["data"]["event"] == "message:send"
    assert invalid["data"]["status"] == 400
    assert no_id["data"]["event"] == "join:conversation"


def test_binary_frames_are_handled_like_text(client, setup_client_user):
    conversation_id = uuid4()
    with client.websocket_connect(ws_url(setup_client_user)) as ws:
        ws.receive_json()
        ws.send_bytes(b'{"event":"typing:start","data":"x"}')
        ws.send_bytes(b"\xff\xfe not utf-8")
        malformed = ws.receive_json()
        ws.send_bytes(
            b'{"event":"join:conversation","data":"%s"}' % str(conversation_id).encode()
        )
        joined = ws.receive_json()

    assert malformed["event"] == "error"
    assert malformed["data"]["detail"] == "Malformed frame"
    assert joined == {
        "event": "conversation:joined",
        "data": {"conversationId": str(conversation_id)},
    }


def test_handler_failure_keeps_connection_open(client, setup_client_user):
    with client.websocket_connect(ws_url(setup_client_user)) as ws:
        ws.receive_json()
        with patch.object(SocketSession, "handle", side_effect=RuntimeError("boom")):
            ws.send_json({"event": "typing:start", "data": "x"})
            failure = ws.receive_json()
        join(ws, uuid4())

    assert failure["data"] == {
        "event": "unknown",
        "status": 500,
        "detail": "Internal server error",
    }
