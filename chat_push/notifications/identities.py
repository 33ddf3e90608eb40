"""Normalization of participant and sender references into identity strings.

Chat and message records carry user references in several shapes: Firestore
DocumentReference objects, {"path": ...} mappings written by other clients,
or plain "clients/{uid}" path strings. Everything downstream of this module
only sees identity strings.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from .schemas import ChatMessage

logger = logging.getLogger(__name__)


def _last_segment(path: str) -> Optional[str]:
    segments = [s for s in path.strip().split('/') if s]
    return segments[-1] if segments else None


def identity_from_reference(value: Any) -> Optional[str]:
    """
    Map a single reference to an identity string.

    Args:
        value: A path string, a mapping with a path/id, or a reference object

    Returns:
        The trailing path segment, or None if the value cannot be mapped
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, str):
        return _last_segment(value)

    if isinstance(value, Mapping):
        path = value.get('path')
        if isinstance(path, str):
            return _last_segment(path)
        doc_id = value.get('id')
        return _last_segment(doc_id) if isinstance(doc_id, str) else None

    # DocumentReference and look-alikes
    doc_id = getattr(value, 'id', None)
    if isinstance(doc_id, str) and doc_id:
        return doc_id
    path = getattr(value, 'path', None)
    if isinstance(path, str):
        return _last_segment(path)

    return None


def sender_identity(message: ChatMessage) -> Optional[str]:
    """Structured senderRef wins over the plain senderId field."""
    if message.senderRef is not None:
        sender = identity_from_reference(message.senderRef)
        if sender:
            return sender
    if message.senderId:
        return message.senderId
    return None


def participant_identities(chat_data: Dict[str, Any]) -> List[str]:
    """
    Extract participant identities from a chat record.

    participantRefs is preferred; participants is only read when
    participantRefs is missing or not a list.
    """
    entries = chat_data.get('participantRefs')
    if not isinstance(entries, list):
        entries = chat_data.get('participants')
        if not isinstance(entries, list):
            return []
        # plain path strings only
        entries = [e for e in entries if isinstance(e, str)]

    identities = []
    for entry in entries:
        identity = identity_from_reference(entry)
        if identity:
            identities.append(identity)
        else:
            logger.debug(f"Discarding unmappable participant entry: {entry!r}")
    return identities
