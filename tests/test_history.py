from __future__ import annotations

import pytest

from context.history import ConversationHistory
from orchestrator.models import Role, Turn


def test_append_and_read_back():
    history = ConversationHistory()
    history.append(Turn(role=Role.USER, content="Hello"))
    history.append(Turn(role=Role.ASSISTANT, content="Hi!"))

    assert len(history) == 2
    assert [t.content for t in history] == ["Hello", "Hi!"]
    assert history.last.content == "Hi!"


def test_messages_is_a_copy():
    history = ConversationHistory()
    history.append(Turn(role=Role.USER, content="Hello"))

    snapshot = history.messages
    snapshot.clear()

    assert len(history) == 1


def test_rejects_non_turns():
    with pytest.raises(TypeError):
        ConversationHistory().append({"role": "user", "content": "hi"})


def test_clear_is_idempotent():
    history = ConversationHistory()
    history.append(Turn(role=Role.USER, content="Hello"))

    history.clear()
    history.clear()

    assert len(history) == 0
    assert history.last is None
