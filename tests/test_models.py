"""Tests for the in-place revision of user messages."""

import pytest

from branchchat.models.conversation import ROLE_ASSISTANT, ROLE_USER, Message


def test_revise_content_bumps_version():
    msg = Message(id=1, content="Hello", role=ROLE_USER)
    msg.revise_content("Hello again")
    assert msg.content == "Hello again"
    assert msg.version == 2
    assert msg.id == 1


def test_revise_content_rejects_assistant_messages():
    msg = Message(id=2, content="Hi there", role=ROLE_ASSISTANT, parent_id=1)
    with pytest.raises(ValueError):
        msg.revise_content("rewritten")
    assert msg.content == "Hi there"
    assert msg.version == 1


def test_revise_content_rejects_blank_text():
    msg = Message(id=1, content="Hello", role=ROLE_USER)
    with pytest.raises(ValueError):
        msg.revise_content("   ")
    assert msg.version == 1


def test_to_dict_serializes_timestamp():
    msg = Message(id=1, content="Hello", role=ROLE_USER)
    data = msg.to_dict()
    assert data["role"] == "user"
    assert data["parent_id"] is None
    assert isinstance(data["created_at"], str)
