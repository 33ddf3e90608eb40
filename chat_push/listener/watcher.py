import asyncio
import logging
import threading
from concurrent.futures import Future
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

from google.cloud.firestore_v1.base_query import FieldFilter

from ..notifications.pipeline import NotificationPipeline

logger = logging.getLogger(__name__)


def parse_message_path(path: str, chats_collection: str = 'chats',
                       messages_collection: str = 'messages') -> Optional[Tuple[str, str]]:
    """
    Split a "chats/{chatId}/messages/{messageId}" document path.

    Returns:
        (chat_id, message_id), or None for any other path
    """
    segments = [s for s in path.strip('/').split('/') if s]
    if len(segments) != 4:
        return None
    if segments[0] != chats_collection or segments[2] != messages_collection:
        return None
    return segments[1], segments[3]


class MessageCreatedListener:
    """
    Runs the notification pipeline for every message created under a chat.

    Watches the messages collection group through a Firestore snapshot
    listener, restricted to documents whose created-at timestamp is not older
    than the moment the listener started. Messages without that field are
    never seen. Snapshot callbacks arrive on a Firestore background thread and
    are handed to the asyncio loop.
    """

    def __init__(self, firestore_db, pipeline: NotificationPipeline,
                 loop: asyncio.AbstractEventLoop,
                 chats_collection: str = 'chats',
                 messages_collection: str = 'messages',
                 created_at_field: str = 'createdAt'):
        self.firestore_db = firestore_db
        self.pipeline = pipeline
        self.loop = loop
        self.chats_collection = chats_collection
        self.messages_collection = messages_collection
        self.created_at_field = created_at_field
        self.started_at: Optional[datetime] = None
        self.watch = None
        self._lock = threading.Lock()
        self._pending: List[Future] = []

    def start(self) -> None:
        self.started_at = datetime.now(timezone.utc)
        query = self.firestore_db.collection_group(self.messages_collection).where(
            filter=FieldFilter(self.created_at_field, '>=', self.started_at)
        )
        self.watch = query.on_snapshot(self.on_snapshot)
        logger.info(
            f"Listening for documents in '{self.messages_collection}' collection group "
            f"with {self.created_at_field} >= {self.started_at.isoformat()}"
        )

    @property
    def is_active(self) -> bool:
        """False once the watch has been stopped or closed by Firestore."""
        if self.watch is None:
            return False
        return bool(getattr(self.watch, 'is_active', True))

    def stop(self) -> None:
        if self.watch is not None:
            self.watch.unsubscribe()
            self.watch = None
            logger.info("Snapshot listener stopped")

    def on_snapshot(self, col_snapshot, changes, read_time) -> None:
        for change in changes:
            if change.type.name != 'ADDED':
                continue
            self.handle_document(change.document)

    def handle_document(self, document: Any) -> Optional[Future]:
        parsed = parse_message_path(
            document.reference.path, self.chats_collection, self.messages_collection
        )
        if parsed is None:
            logger.debug(f"Ignoring document outside chats: {document.reference.path}")
            return None

        chat_id, message_id = parsed
        future = asyncio.run_coroutine_threadsafe(
            self.pipeline.handle_message_created(chat_id, message_id, document.to_dict()),
            self.loop
        )
        future.add_done_callback(lambda f: self._log_result(f, chat_id, message_id))
        with self._lock:
            self._pending = [f for f in self._pending if not f.done()]
            self._pending.append(future)
        return future

    def _log_result(self, future: Future, chat_id: str, message_id: str) -> None:
        if future.cancelled():
            logger.warning(f"Notification for message {message_id} in chat {chat_id} was cancelled")
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Notification pipeline failed for message {message_id} in chat {chat_id}: {str(error)}",
                         exc_info=error)
            return
        logger.info(f"Notification for message {message_id} finished: {future.result().status.value}")

    async def drain(self) -> None:
        """Wait for in-flight pipeline runs to finish."""
        with self._lock:
            pending = [f for f in self._pending if not f.done()]
        if pending:
            logger.info(f"Waiting for {len(pending)} in-flight notification(s)")
            await asyncio.gather(*(asyncio.wrap_future(f) for f in pending), return_exceptions=True)
