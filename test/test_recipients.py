import asyncio

import pytest

from chat_push.exceptions import InfrastructureError
from chat_push.notifications.recipients import RecipientResolver
from chat_push.notifications.schemas import ChatMessage


def resolve(store, chat_id, message):
    return asyncio.run(RecipientResolver(store).resolve_recipients(chat_id, message))


@pytest.mark.parametrize("chat", [
    {"participantRefs": ["clients/A", "clients/B", "coaches/C"]},
    {"participants": ["clients/A", "clients/B", "coaches/C"]},
    {"participantRefs": [{"path": "clients/A"}, {"path": "clients/B"}, {"path": "coaches/C"}]},
])
def test_sender_excluded_for_every_representation(store, chat):
    store.add("chats", "chat1", chat)
    recipients = resolve(store, "chat1", ChatMessage(senderId="B", text="hi"))
    assert recipients == ["A", "C"]


def test_sender_ref_excluded(store):
    store.add("chats", "chat1", {"participantRefs": ["A", "B", "C"]})
    recipients = resolve(store, "chat1", ChatMessage(senderRef={"path": "clients/C"}))
    assert recipients == ["A", "B"]


def test_unknown_sender_keeps_all_participants(store):
    store.add("chats", "chat1", {"participants": ["A", "B", "C"]})
    assert resolve(store, "chat1", ChatMessage(text="hi")) == ["A", "B", "C"]


def test_sender_not_a_participant(store):
    store.add("chats", "chat1", {"participants": ["A", "B"]})
    assert resolve(store, "chat1", ChatMessage(senderId="Z")) == ["A", "B"]


def test_missing_chat_returns_empty(store):
    assert resolve(store, "missing", ChatMessage(senderId="A")) == []
    assert store.reads == [("chats", "missing")]


def test_only_sender_in_chat(store):
    store.add("chats", "solo", {"participantRefs": ["clients/A"]})
    assert resolve(store, "solo", ChatMessage(senderId="A")) == []


def test_store_failure_propagates(store):
    store.broken.add("chats")
    with pytest.raises(InfrastructureError):
        resolve(store, "chat1", ChatMessage(senderId="A"))
