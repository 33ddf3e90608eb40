import asyncio
import logging
from typing import Any, Dict, Optional

import google.cloud.firestore
from google.api_core.exceptions import GoogleAPICallError, RetryError
from google.auth.exceptions import GoogleAuthError

from ..exceptions import InfrastructureError

logger = logging.getLogger(__name__)


class FirestoreDocumentStore:
    """DocumentStore backed by a Firestore client."""

    def __init__(self, client: google.cloud.firestore.Client):
        self.client = client

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """
        Read a single document.

        Args:
            collection: Collection name
            doc_id: Document ID

        Returns:
            The document data, or None if the document does not exist

        Raises:
            InfrastructureError: if the read itself fails
        """
        doc_ref = self.client.collection(collection).document(doc_id)
        try:
            # Sync Firestore client, keep it off the event loop
            snapshot = await asyncio.to_thread(doc_ref.get)
        except (GoogleAPICallError, RetryError, GoogleAuthError) as e:
            logger.error(f"Error reading {collection}/{doc_id}: {str(e)}")
            raise InfrastructureError(
                f"Failed to read {collection}/{doc_id}: {str(e)}",
                collection=collection,
                doc_id=doc_id
            ) from e

        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}
