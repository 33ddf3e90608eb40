import asyncio
import logging
import signal
import sys

from ..config import settings
from ..exceptions import ListenerStoppedError
from ..firebase import get_firestore_db
from ..logging_config import setup_logging
from ..notifications.pipeline import NotificationPipeline, PipelineContext
from .watcher import MessageCreatedListener

logger = logging.getLogger("chat_push.listener")

POLL_INTERVAL_SECONDS = 1

# Global flag for graceful shutdown
should_exit = False


def signal_handler(sig, frame):
    """Handle termination signals for graceful shutdown"""
    global should_exit
    logger.info(f"Received signal {sig}, shutting down gracefully...")
    should_exit = True


async def main():
    """Main entry point for the message listener service"""
    global should_exit

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info(f"Starting chat push listener in {settings.environment} environment")

    pipeline = NotificationPipeline(PipelineContext.from_settings(settings))
    listener = MessageCreatedListener(
        get_firestore_db(),
        pipeline,
        asyncio.get_running_loop(),
        chats_collection=settings.chats_collection,
        messages_collection=settings.messages_collection,
        created_at_field=settings.created_at_field,
    )
    listener.start()

    try:
        while not should_exit:
            if not listener.is_active:
                logger.error("Firestore snapshot listener closed unexpectedly, stopping service")
                raise ListenerStoppedError("Snapshot listener is no longer active")
            await asyncio.sleep(POLL_INTERVAL_SECONDS)
    finally:
        listener.stop()
        await listener.drain()

    logger.info("Chat push listener has shut down gracefully")


def run():
    setup_logging()
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Listener stopped by keyboard interrupt")
    except Exception as e:
        logger.error(f"Unhandled exception: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    run()
