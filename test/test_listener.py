import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from chat_push.exceptions import ListenerStoppedError
from chat_push.listener import main as listener_main
from chat_push.listener.watcher import MessageCreatedListener, parse_message_path
from chat_push.notifications.pipeline import NotificationPipeline, PipelineContext
from chat_push.notifications.schemas import DispatchStatus


@pytest.mark.parametrize("path,expected", [
    ("chats/c1/messages/m1", ("c1", "m1")),
    ("/chats/c1/messages/m1", ("c1", "m1")),
    ("bookings/b1/messages/m1", None),
    ("chats/c1/notes/m1", None),
    ("chats/c1/messages", None),
    ("orgs/o1/chats/c1/messages/m1", None),
])
def test_parse_message_path(path, expected):
    assert parse_message_path(path) == expected


def _change(path, data, kind="ADDED"):
    document = SimpleNamespace(reference=SimpleNamespace(path=path), to_dict=lambda: data)
    return SimpleNamespace(type=SimpleNamespace(name=kind), document=document)


class FakeWatch:
    def __init__(self, is_active=True):
        self.is_active = is_active
        self.unsubscribed = False

    def unsubscribe(self):
        self.unsubscribed = True
        self.is_active = False


class FakeQuery:
    def __init__(self, watch_active=True):
        self.callback = None
        self.filters = []
        self.watch = FakeWatch(watch_active)

    def where(self, filter=None):
        self.filters.append(filter)
        return self

    def on_snapshot(self, callback):
        self.callback = callback
        return self.watch


class FakeFirestore:
    def __init__(self, watch_active=True):
        self.watch_active = watch_active
        self.groups = {}

    def collection_group(self, name):
        return self.groups.setdefault(name, FakeQuery(self.watch_active))


def test_watch_is_limited_to_messages_created_after_start(store, transport):
    db = FakeFirestore()
    pipeline = NotificationPipeline(PipelineContext(store=store, transport=transport))
    listener = MessageCreatedListener(db, pipeline, loop=None, created_at_field="sentAt")

    before = datetime.now(timezone.utc)
    listener.start()

    (field_filter,) = db.groups["messages"].filters
    assert field_filter.field_path == "sentAt"
    assert field_filter.op_string == ">="
    assert field_filter.value == listener.started_at
    assert listener.started_at >= before


def test_new_messages_run_the_pipeline(store, transport):
    store.add("chats", "c1", {"participantRefs": ["u1", "u2"]})
    store.add("clients", "u2", {"deviceTokens": ["tokA"]})
    db = FakeFirestore()

    async def scenario():
        pipeline = NotificationPipeline(PipelineContext(store=store, transport=transport))
        listener = MessageCreatedListener(db, pipeline, asyncio.get_running_loop())
        listener.start()
        callback = db.groups["messages"].callback

        await asyncio.to_thread(callback, None, [
            _change("chats/c1/messages/m2", {"senderId": "u1", "text": "hi"}),
            _change("chats/c1/messages/m1", {"senderId": "u1", "text": "edited"}, kind="MODIFIED"),
            _change("threads/t1/messages/m3", {"senderId": "u1"}),
        ], None)
        await listener.drain()
        listener.stop()

    asyncio.run(scenario())

    assert len(transport.calls) == 1
    tokens, payload = transport.calls[0]
    assert tokens == ["tokA"]
    assert payload.data == {"chatId": "c1", "messageId": "m2"}
    assert db.groups["messages"].watch.unsubscribed


def test_failed_invocation_does_not_stop_listener(store, transport):
    store.add("chats", "c2", {"participantRefs": ["u1", "u2"]})
    store.add("clients", "u2", {"deviceTokens": ["tokB"]})
    store.broken.add("coaches")
    db = FakeFirestore()
    results = []

    async def scenario():
        pipeline = NotificationPipeline(PipelineContext(store=store, transport=transport))
        listener = MessageCreatedListener(db, pipeline, asyncio.get_running_loop())
        listener.start()

        # u3 has no client profile, so the coaches read fails
        store.add("chats", "c1", {"participantRefs": ["u1", "u3"]})
        failing = await asyncio.to_thread(
            listener.handle_document, _change("chats/c1/messages/m1", {"senderId": "u1"}).document
        )
        working = await asyncio.to_thread(
            listener.handle_document, _change("chats/c2/messages/m2", {"senderId": "u1"}).document
        )
        await listener.drain()
        results.extend([failing, working, listener.is_active])

    asyncio.run(scenario())

    failing, working, still_active = results
    assert failing.exception() is not None
    assert working.result().status == DispatchStatus.SENT
    assert transport.calls[0][0] == ["tokB"]
    assert still_active


def test_is_active_follows_the_watch(store, transport):
    db = FakeFirestore()
    listener = MessageCreatedListener(db, NotificationPipeline(PipelineContext(store=store, transport=transport)), None)
    assert not listener.is_active

    listener.start()
    assert listener.is_active

    db.groups["messages"].watch.is_active = False
    assert not listener.is_active

    listener.stop()
    assert not listener.is_active


@pytest.fixture
def service(monkeypatch, store, transport):
    """Patch the listener entry point onto fakes."""
    db = FakeFirestore(watch_active=False)
    monkeypatch.setattr(listener_main, "get_firestore_db", lambda: db)
    monkeypatch.setattr(listener_main.PipelineContext, "from_settings",
                        classmethod(lambda cls, config=None: cls(store=store, transport=transport)))
    monkeypatch.setattr(listener_main.signal, "signal", lambda *args: None)
    monkeypatch.setattr(listener_main, "setup_logging", lambda: None)
    monkeypatch.setattr(listener_main, "POLL_INTERVAL_SECONDS", 0)
    monkeypatch.setattr(listener_main, "should_exit", False)
    return db


def test_service_stops_when_watch_dies(service):
    with pytest.raises(ListenerStoppedError):
        asyncio.run(asyncio.wait_for(listener_main.main(), timeout=3))
    assert service.groups["messages"].watch.unsubscribed


def test_run_exits_non_zero_when_watch_dies(service):
    with pytest.raises(SystemExit) as exc_info:
        listener_main.run()
    assert exc_info.value.code == 1
