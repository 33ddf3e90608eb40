import logging
from typing import List

from ..ports import DocumentStore
from .identities import participant_identities, sender_identity
from .schemas import ChatMessage

logger = logging.getLogger(__name__)


class RecipientResolver:
    """Works out who should be notified about a new chat message."""

    def __init__(self, store: DocumentStore, chats_collection: str = 'chats'):
        self.store = store
        self.chats_collection = chats_collection

    async def resolve_recipients(self, chat_id: str, message: ChatMessage) -> List[str]:
        """
        Resolve the recipients of a message: chat participants minus the sender.

        Args:
            chat_id: ID of the parent chat
            message: The newly created message

        Returns:
            Recipient identities in participant order; empty if the chat does
            not exist or nobody but the sender takes part in it
        """
        chat_data = await self.store.get(self.chats_collection, chat_id)
        if chat_data is None:
            logger.info(f"Chat {chat_id} not found, nobody to notify")
            return []

        sender_id = sender_identity(message)
        participants = participant_identities(chat_data)

        recipients = [p for p in participants if p != sender_id]
        if not recipients:
            logger.info(f"No recipients for message {message.id} in chat {chat_id}")
        else:
            logger.info(f"Resolved {len(recipients)} recipient(s) for chat {chat_id} (sender: {sender_id})")
        return recipients
