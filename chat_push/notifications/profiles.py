import logging
from typing import Any, Dict, List, Optional, Sequence

from ..ports import DocumentStore

logger = logging.getLogger(__name__)

DEVICE_TOKENS_FIELD = 'deviceTokens'


async def first_found(store: DocumentStore, collections: Sequence[str],
                      doc_id: str) -> Optional[Dict[str, Any]]:
    """
    Look a document up in each collection in priority order.

    Args:
        store: Document store to read from
        collections: Collection names, highest priority first
        doc_id: Document ID to look up

    Returns:
        The first record found, or None if no collection has it
    """
    for collection in collections:
        record = await store.get(collection, doc_id)
        if record is not None:
            logger.debug(f"Found {doc_id} in {collection}")
            return record
    return None


def device_tokens(profile: Optional[Dict[str, Any]]) -> List[str]:
    """Registered device tokens of a profile, empty when missing or malformed."""
    if not profile:
        return []
    tokens = profile.get(DEVICE_TOKENS_FIELD)
    if not isinstance(tokens, list):
        return []
    return [t for t in tokens if isinstance(t, str) and t]
