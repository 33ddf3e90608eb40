class ChatPushError(Exception):
    """Base class for chat push errors."""


class InfrastructureError(ChatPushError):
    """A read against the document store failed (as opposed to finding nothing)."""

    def __init__(self, message: str, collection: str = None, doc_id: str = None):
        super().__init__(message)
        self.collection = collection
        self.doc_id = doc_id


class TransportError(ChatPushError):
    """The push transport rejected or failed a whole batch."""

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.code = code


class ListenerStoppedError(ChatPushError):
    """The Firestore snapshot listener closed while the service was running."""
