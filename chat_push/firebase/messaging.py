import asyncio
import logging
import time
from typing import List, Optional

import firebase_admin
from firebase_admin import messaging
from firebase_admin.exceptions import FirebaseError

from ..exceptions import TransportError
from ..notifications.schemas import BatchResult, NotificationPayload, TokenResult

logger = logging.getLogger(__name__)

TEST_TITLE = "Test Notification"
TEST_BODY = "This is a test push sent from chat-push-send-test"


class FcmTransport:
    """PushTransport backed by Firebase Cloud Messaging."""

    def __init__(self, app: Optional[firebase_admin.App] = None, batch_size: int = 500):
        self.app = app
        self.batch_size = batch_size

    async def send_batch(self, tokens: List[str], payload: NotificationPayload) -> BatchResult:
        """
        Send one notification to a list of device tokens.

        Tokens are split into multicast requests of at most batch_size. A
        request that fails as a whole marks its tokens failed; if every
        request fails the error is raised as TransportError.

        Args:
            tokens: Device registration tokens
            payload: Notification and data to deliver

        Returns:
            BatchResult with one TokenResult per token, in token order
        """
        result = BatchResult()
        last_error = None
        failed_requests = 0
        requests = 0

        for i in range(0, len(tokens), self.batch_size):
            batch = tokens[i:i + self.batch_size]
            requests += 1
            try:
                message = messaging.MulticastMessage(
                    notification=messaging.Notification(
                        title=payload.notification.title,
                        body=payload.notification.body
                    ),
                    data=payload.data,
                    tokens=batch
                )
                batch_response = await asyncio.to_thread(
                    messaging.send_each_for_multicast, message, app=self.app
                )
            except (FirebaseError, ValueError) as e:
                logger.error(f"FCM error sending batch of {len(batch)} tokens: {str(e)}")
                last_error = e
                failed_requests += 1
                code = getattr(e, 'code', None)
                result.responses.extend(
                    TokenResult(token=t, success=False, code=code, message=str(e)) for t in batch
                )
                continue

            for token, resp in zip(batch, batch_response.responses):
                if resp.success:
                    result.responses.append(TokenResult(token=token, success=True, messageId=resp.message_id))
                else:
                    error = resp.exception
                    result.responses.append(TokenResult(
                        token=token,
                        success=False,
                        code=getattr(error, 'code', None),
                        message=str(error) if error else None
                    ))

        if requests and failed_requests == requests:
            raise TransportError(str(last_error), code=getattr(last_error, 'code', None)) from last_error

        return result

    async def send_test(self, token: str) -> str:
        """Send a hardcoded test notification to a single token, return the message ID."""
        message = messaging.Message(
            token=token,
            notification=messaging.Notification(title=TEST_TITLE, body=TEST_BODY),
            apns=messaging.APNSConfig(
                headers={'apns-priority': '10'},
                payload=messaging.APNSPayload(
                    aps=messaging.Aps(
                        alert=messaging.ApsAlert(title=TEST_TITLE, body=TEST_BODY),
                        sound='default',
                        badge=1
                    )
                )
            ),
            data={
                'test': '1',
                'timestamp': str(int(time.time() * 1000))
            }
        )
        try:
            return await asyncio.to_thread(messaging.send, message, app=self.app)
        except (FirebaseError, ValueError) as e:
            raise TransportError(str(e), code=getattr(e, 'code', None)) from e
