import asyncio
import logging
from typing import List, Sequence

from ..exceptions import TransportError
from ..ports import DocumentStore, PushTransport
from .profiles import device_tokens, first_found
from .schemas import (
    BatchResult,
    ChatMessage,
    DispatchOutcome,
    DispatchStatus,
    NotificationContent,
    NotificationPayload,
    TokenFailure,
)

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New message"


def build_payload(message: ChatMessage, chat_id: str, message_id: str,
                  default_title: str = DEFAULT_TITLE) -> NotificationPayload:
    return NotificationPayload(
        notification=NotificationContent(
            title=message.title or default_title,
            body=message.text or ''
        ),
        data={
            'chatId': chat_id,
            'messageId': message_id
        }
    )


def unique_tokens(tokens: List[str]) -> List[str]:
    """Drop repeated tokens, keeping first-seen order."""
    return list(dict.fromkeys(tokens))


class NotificationDispatcher:
    """Aggregates recipients' device tokens and sends one batch notification."""

    def __init__(self,
                 store: DocumentStore,
                 transport: PushTransport,
                 profile_collections: Sequence[str] = ('clients', 'coaches'),
                 default_title: str = DEFAULT_TITLE,
                 deduplicate_tokens: bool = True):
        self.store = store
        self.transport = transport
        self.profile_collections = list(profile_collections)
        self.default_title = default_title
        self.deduplicate_tokens = deduplicate_tokens

    async def collect_tokens(self, recipients: List[str]) -> List[str]:
        """
        Look up every recipient's profile and flatten their device tokens.

        Lookups for distinct recipients run concurrently; the result follows
        recipient order and keeps duplicates.
        """
        profiles = await asyncio.gather(
            *(first_found(self.store, self.profile_collections, uid) for uid in recipients)
        )

        tokens = []
        for uid, profile in zip(recipients, profiles):
            if profile is None:
                logger.info(f"No profile found for recipient {uid}, skipping")
                continue
            tokens.extend(device_tokens(profile))
        return tokens

    async def dispatch(self, recipients: List[str], message: ChatMessage,
                       chat_id: str, message_id: str) -> DispatchOutcome:
        """
        Send the message notification to all recipients' devices.

        Args:
            recipients: Recipient identities
            message: The message being announced
            chat_id: ID of the parent chat
            message_id: ID of the message

        Returns:
            DispatchOutcome describing what was sent. Transport failures are
            reported in the outcome rather than raised.
        """
        if not recipients:
            logger.info(f"No recipients for message {message_id}, nothing to dispatch")
            return DispatchOutcome(status=DispatchStatus.NO_RECIPIENTS)

        tokens = await self.collect_tokens(recipients)
        if self.deduplicate_tokens:
            deduped = unique_tokens(tokens)
            if len(deduped) != len(tokens):
                logger.debug(f"Dropped {len(tokens) - len(deduped)} duplicate token(s)")
            tokens = deduped

        if not tokens:
            logger.info(f"No device tokens for recipients of message {message_id}")
            return DispatchOutcome(status=DispatchStatus.NO_TOKENS)

        payload = build_payload(message, chat_id, message_id, self.default_title)

        try:
            result = await self.transport.send_batch(tokens, payload)
        except TransportError as e:
            logger.error(f"Error sending push notification for message {message_id}: {str(e)}")
            return DispatchOutcome(
                status=DispatchStatus.FAILED,
                tokens=tokens,
                failure_count=len(tokens),
                error=str(e)
            )

        return self._outcome(tokens, result, message_id)

    def _outcome(self, tokens: List[str], result: BatchResult, message_id: str) -> DispatchOutcome:
        failures = [
            TokenFailure(token=r.token, code=r.code, message=r.message)
            for r in result.responses if not r.success
        ]
        for failure in failures:
            logger.warning(f"Push to token {failure.token[:12]}... failed: {failure.code} {failure.message}")

        if not failures:
            status = DispatchStatus.SENT
        elif result.success_count > 0:
            status = DispatchStatus.PARTIAL
        else:
            status = DispatchStatus.FAILED

        logger.info(
            f"Push for message {message_id}: {result.success_count} sent, "
            f"{result.failure_count} failed ({status.value})"
        )
        return DispatchOutcome(
            status=status,
            tokens=tokens,
            success_count=result.success_count,
            failure_count=result.failure_count,
            failures=failures
        )
