from typing import Any, Dict, List, Optional

import pytest

from chat_push.exceptions import InfrastructureError, TransportError
from chat_push.notifications.schemas import BatchResult, NotificationPayload, TokenResult


class FakeStore:
    """In-memory DocumentStore."""

    def __init__(self, records: Dict[str, Dict[str, Dict[str, Any]]] = None):
        self.records = records or {}
        self.reads: List[tuple] = []
        self.broken: set = set()

    def add(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self.records.setdefault(collection, {})[doc_id] = data

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        self.reads.append((collection, doc_id))
        if collection in self.broken:
            raise InfrastructureError(f"{collection} unavailable", collection=collection, doc_id=doc_id)
        return self.records.get(collection, {}).get(doc_id)


class FakeTransport:
    """In-memory PushTransport; every token succeeds unless told otherwise."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.failing_tokens: Dict[str, str] = {}
        self.error: Optional[Exception] = None

    async def send_batch(self, tokens: List[str], payload: NotificationPayload) -> BatchResult:
        self.calls.append((list(tokens), payload))
        if self.error is not None:
            raise self.error
        return BatchResult(responses=[
            TokenResult(token=t, success=False, code=self.failing_tokens[t], message="rejected")
            if t in self.failing_tokens else
            TokenResult(token=t, success=True, messageId=f"projects/test/messages/{i}")
            for i, t in enumerate(tokens)
        ])


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def transport_error():
    return TransportError("FCM unavailable", code="UNAVAILABLE")
