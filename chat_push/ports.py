"""Ports used by the notification pipeline.

The pipeline only depends on these two contracts, so the Firebase adapters
can be swapped for in-memory fakes.
"""

from typing import Any, Dict, List, Optional, Protocol

from .notifications.schemas import BatchResult, NotificationPayload


class DocumentStore(Protocol):
    """Read access to the document store."""

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return the record's data, or None when the document does not exist.

        Raises InfrastructureError when the read itself fails.
        """
        ...


class PushTransport(Protocol):
    """Batch push delivery."""

    async def send_batch(self, tokens: List[str], payload: NotificationPayload) -> BatchResult:
        """Deliver one payload to every token.

        Raises TransportError when the batch as a whole fails.
        """
        ...
