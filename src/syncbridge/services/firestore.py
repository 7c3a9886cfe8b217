"""
Firestore-backed store for integrations, mappings and sync run logs.
"""

import logging
from typing import Dict, List, Any, Optional

from google.api_core.exceptions import NotFound
from google.auth import default
from google.cloud import firestore

from .store import SyncStore

logger = logging.getLogger(__name__)


class FirestoreStore(SyncStore):
    """
    SyncStore implementation on top of the async Firestore client.
    """

    def __init__(self, project_id: Optional[str] = None, collection_prefix: str = ""):
        """
        Initialize Firestore store.

        Args:
            project_id: Google Cloud project ID. If None, uses default from environment.
            collection_prefix: Optional prefix so several environments can share a project
        """
        try:
            if project_id:
                self.db = firestore.AsyncClient(project=project_id)
            else:
                # Use application default credentials
                credentials, project = default()
                self.db = firestore.AsyncClient(project=project, credentials=credentials)

            self.collection_prefix = collection_prefix
            logger.info(f"Firestore store initialized for project: {self.db.project}")

        except Exception as e:
            logger.error(f"Failed to initialize Firestore: {e}")
            raise

    def _collection(self, name: str):
        return self.db.collection(f"{self.collection_prefix}{name}")

    async def find_by_id(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            doc = await self._collection(collection).document(doc_id).get()
            if doc.exists:
                return doc.to_dict()
            return None

        except Exception as e:
            logger.error(f"Failed to get {collection}/{doc_id}: {e}")
            raise

    async def find(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        try:
            query = self._collection(collection)

            for field, value in (filters or {}).items():
                query = query.where(field, "==", value)

            if order_by:
                direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
                query = query.order_by(order_by, direction=direction)
            if limit:
                query = query.limit(limit)

            docs = []
            async for doc in query.stream():
                docs.append({**doc.to_dict(), "id": doc.id})
            return docs

        except Exception as e:
            logger.error(f"Failed to query {collection}: {e}")
            raise

    async def save(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        try:
            await self._collection(collection).document(doc_id).set(data)
            logger.info(f"Saved {collection}/{doc_id}")

        except Exception as e:
            logger.error(f"Failed to save {collection}/{doc_id}: {e}")
            raise

    async def update(self, collection: str, doc_id: str, updates: Dict[str, Any]) -> bool:
        try:
            await self._collection(collection).document(doc_id).update(updates)
            logger.info(f"Updated {collection}/{doc_id}")
            return True

        except NotFound:
            logger.warning(f"Cannot update missing document {collection}/{doc_id}")
            return False
        except Exception as e:
            logger.error(f"Failed to update {collection}/{doc_id}: {e}")
            raise

    async def delete(self, collection: str, doc_id: str) -> bool:
        try:
            doc_ref = self._collection(collection).document(doc_id)
            doc = await doc_ref.get()

            if doc.exists:
                await doc_ref.delete()
                logger.info(f"Deleted {collection}/{doc_id}")
                return True
            return False

        except Exception as e:
            logger.error(f"Failed to delete {collection}/{doc_id}: {e}")
            raise
