import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import Settings, settings as default_settings
from ..ports import DocumentStore, PushTransport
from .dispatcher import DEFAULT_TITLE, NotificationDispatcher
from .recipients import RecipientResolver
from .schemas import ChatMessage, DispatchOutcome, DispatchStatus

logger = logging.getLogger(__name__)


@dataclass
class PipelineContext:
    """Store and transport handles the pipeline runs against."""
    store: DocumentStore
    transport: PushTransport
    chats_collection: str = 'chats'
    profile_collections: List[str] = field(default_factory=lambda: ['clients', 'coaches'])
    default_title: str = DEFAULT_TITLE
    deduplicate_tokens: bool = True

    @classmethod
    def from_settings(cls, config: Settings = None) -> "PipelineContext":
        """Build a Firebase-backed context from application settings."""
        from ..firebase import get_firebase_app, get_firestore_db
        from ..firebase.messaging import FcmTransport
        from ..firebase.store import FirestoreDocumentStore

        config = config or default_settings
        app = get_firebase_app()
        return cls(
            store=FirestoreDocumentStore(get_firestore_db()),
            transport=FcmTransport(app=app, batch_size=config.fcm_batch_size),
            chats_collection=config.chats_collection,
            profile_collections=list(config.profile_collections),
            default_title=config.default_notification_title,
            deduplicate_tokens=config.deduplicate_tokens,
        )


class NotificationPipeline:
    """Fans a newly created chat message out to the other participants."""

    def __init__(self, context: PipelineContext):
        self.context = context
        self.resolver = RecipientResolver(context.store, context.chats_collection)
        self.dispatcher = NotificationDispatcher(
            context.store,
            context.transport,
            profile_collections=context.profile_collections,
            default_title=context.default_title,
            deduplicate_tokens=context.deduplicate_tokens,
        )

    async def handle_message_created(self, chat_id: str, message_id: str,
                                     message_data: Optional[Dict[str, Any]]) -> DispatchOutcome:
        """
        Process one message creation event.

        Args:
            chat_id: ID of the chat the message was created under
            message_id: ID of the new message
            message_data: The new message record

        Returns:
            DispatchOutcome; missing chats and empty recipient or token sets
            end as successful no-ops

        Raises:
            InfrastructureError: if a document store read fails
        """
        logger.info(f"Processing new message {message_id} in chat {chat_id}")
        message = ChatMessage.from_record(message_data, message_id=message_id, chat_id=chat_id)

        recipients = await self.resolver.resolve_recipients(chat_id, message)
        if not recipients:
            return DispatchOutcome(status=DispatchStatus.NO_RECIPIENTS)

        return await self.dispatcher.dispatch(recipients, message, chat_id, message_id)
