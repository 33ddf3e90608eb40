"""Send one hardcoded test notification to a single FCM token.

Usage:
    chat-push-send-test <FCM_TOKEN> [--service-account ./serviceAccount.json]

Without --service-account, ./serviceAccountKey.json is used when present,
otherwise FIREBASE_SECRET or Application Default Credentials.
"""

import argparse
import asyncio
import logging
import os
import sys

from .exceptions import TransportError
from .firebase.firebase import FirebaseApp
from .firebase.messaging import FcmTransport
from .logging_config import setup_logging

logger = logging.getLogger(__name__)

FALLBACK_SERVICE_ACCOUNT = 'serviceAccountKey.json'


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog='chat-push-send-test', description=__doc__.splitlines()[0])
    parser.add_argument('token', help='FCM registration token of the target device')
    parser.add_argument('--service-account', '--serviceAccount', dest='service_account', default=None,
                        help='path to a service account JSON key')
    return parser.parse_args(argv)


def resolve_service_account(path=None):
    if path:
        return path
    if os.path.exists(FALLBACK_SERVICE_ACCOUNT):
        return FALLBACK_SERVICE_ACCOUNT
    return None


async def send(token: str, service_account=None) -> int:
    service_account = resolve_service_account(service_account)
    if service_account:
        logger.info(f"Initializing Firebase with service account: {service_account}")
    else:
        logger.info("Initializing Firebase with default credentials")

    app = FirebaseApp(credentials_path=service_account).get_app()
    transport = FcmTransport(app=app)
    try:
        message_id = await transport.send_test(token)
    except TransportError as e:
        logger.error(f"send() error: {str(e)}")
        if e.code:
            logger.error(f"error code: {e.code}")
        return 1

    logger.info(f"send() response messageId: {message_id}")
    return 0


def main(argv=None) -> int:
    setup_logging(json_format=False)
    args = parse_args(argv)
    return asyncio.run(send(args.token, args.service_account))


if __name__ == "__main__":
    sys.exit(main())
