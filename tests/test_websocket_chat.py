"""Tests for the WebSocket chat session."""

import json

from sqlmodel import Session, select

from branchchat.models.conversation import Message, Prompt


def _receive_state(ws):
    """Read frames until the next state frame, collecting any errors."""
    errors = []
    while True:
        data = ws.receive_json()
        if data["type"] == "error":
            errors.append(data)
        elif data["type"] == "state":
            return data, errors


def test_connect_sends_initial_state(client):
    with client.websocket_connect("/api/chat/ws") as ws:
        state, errors = _receive_state(ws)
        assert errors == []
        assert state["messages"] == []
        assert state["busy"] is False
        assert state["state"] == "idle"


def test_send_persists_message_and_reply(client, engine):
    with client.websocket_connect("/api/chat/ws") as ws:
        _receive_state(ws)
        ws.send_text(json.dumps({"type": "send", "content": "Hello"}))
        state, errors = _receive_state(ws)

    assert errors == []
    assert [(m["role"], m["content"]) for m in state["messages"]] == [
        ("user", "Hello"),
        ("assistant", "Hi there"),
    ]
    assert state["messages"][1]["parent_id"] == state["messages"][0]["id"]

    with Session(engine) as session:
        prompts = session.exec(select(Prompt)).all()
    assert [p.content for p in prompts] == ["Hello"]


def test_plain_text_is_sent(client):
    with client.websocket_connect("/api/chat/ws") as ws:
        _receive_state(ws)
        ws.send_text("Hello")
        state, _ = _receive_state(ws)
    assert state["messages"][0]["content"] == "Hello"


def test_empty_send_is_ignored(client, engine, completion):
    with client.websocket_connect("/api/chat/ws") as ws:
        _receive_state(ws)
        ws.send_text(json.dumps({"type": "send", "content": "   "}))
        state, errors = _receive_state(ws)

    assert errors == []
    assert state["messages"] == []
    assert completion.prompts == []


def test_edit_flow(client, engine):
    with client.websocket_connect("/api/chat/ws") as ws:
        _receive_state(ws)
        ws.send_text(json.dumps({"type": "send", "content": "Hello"}))
        state, _ = _receive_state(ws)
        user_id = state["messages"][0]["id"]

        ws.send_text(json.dumps({"type": "edit", "message_id": user_id}))
        state, errors = _receive_state(ws)
        assert errors == []
        assert state["editing_id"] == user_id
        assert state["draft"] == "Hello"

        ws.send_text(json.dumps({"type": "send", "content": "Hello again"}))
        state, _ = _receive_state(ws)

    assert state["editing_id"] is None
    edited = state["messages"][0]
    assert (edited["id"], edited["content"], edited["version"]) == (user_id, "Hello again", 2)

    with Session(engine) as session:
        users = session.exec(select(Message).where(Message.role == "user")).all()
    assert len(users) == 1


def test_edit_assistant_message_rejected(client):
    with client.websocket_connect("/api/chat/ws") as ws:
        _receive_state(ws)
        ws.send_text(json.dumps({"type": "send", "content": "Hello"}))
        state, _ = _receive_state(ws)
        reply_id = state["messages"][1]["id"]

        ws.send_text(json.dumps({"type": "edit", "message_id": reply_id}))
        state, errors = _receive_state(ws)

    assert len(errors) == 1
    assert state["editing_id"] is None


def test_provider_failure_reports_error_then_retry(client, completion):
    completion.error = "quota exceeded"
    with client.websocket_connect("/api/chat/ws") as ws:
        _receive_state(ws)
        ws.send_text(json.dumps({"type": "send", "content": "Hello"}))
        state, errors = _receive_state(ws)

        assert errors[0]["step"] == "complete"
        assert state["busy"] is False
        assert [m["role"] for m in state["messages"]] == ["user"]

        completion.error = None
        ws.send_text(json.dumps({"type": "retry", "message_id": state["messages"][0]["id"]}))
        state, errors = _receive_state(ws)

    assert errors == []
    assert [m["role"] for m in state["messages"]] == ["user", "assistant"]


def test_follow_ups_and_versions_panels(client):
    with client.websocket_connect("/api/chat/ws") as ws:
        _receive_state(ws)
        ws.send_text(json.dumps({"type": "send", "content": "Hello"}))
        state, _ = _receive_state(ws)
        user_id = state["messages"][0]["id"]

        ws.send_text(json.dumps({"type": "follow_ups", "message_id": user_id}))
        state, _ = _receive_state(ws)
        assert [m["role"] for m in state["follow_ups"]] == ["assistant"]

        ws.send_text(json.dumps({"type": "versions", "message_id": user_id}))
        state, _ = _receive_state(ws)

    kinds = [v["kind"] for v in state["previous_versions"]]
    assert kinds == ["prompt", "message"]


def test_unknown_event(client):
    with client.websocket_connect("/api/chat/ws") as ws:
        _receive_state(ws)
        ws.send_text(json.dumps({"type": "dance"}))
        _, errors = _receive_state(ws)
    assert errors[0]["message"] == "Unsupported event: dance"
