"""
Persistence contract used by the sync engine, plus an in-memory store.
"""

import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..models.integration import Integration
from ..models.mapping import FieldMapping, MappingGroup
from ..models.sync import SyncRunLog

logger = logging.getLogger(__name__)

INTEGRATIONS = "integrations"
MAPPINGS = "mappings"
FIELD_MAPPINGS = "field_mappings"
SYNC_LOGS = "sync_logs"


class SyncStore(ABC):
    """
    Abstract document store.

    Implementations provide five primitives over named collections; the
    typed helpers below are built on them.
    """

    @abstractmethod
    async def find_by_id(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def find(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return documents (each including its ``id``) matching all equality filters."""
        pass

    @abstractmethod
    async def save(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Insert or replace a document."""
        pass

    @abstractmethod
    async def update(self, collection: str, doc_id: str, updates: Dict[str, Any]) -> bool:
        """Merge fields into an existing document; False if it does not exist."""
        pass

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> bool:
        pass

    # Integrations

    async def get_integration(self, integration_id: str) -> Optional[Integration]:
        data = await self.find_by_id(INTEGRATIONS, integration_id)
        return Integration.from_document(integration_id, data) if data else None

    async def save_integration(self, integration: Integration) -> Integration:
        integration.updated_at = datetime.utcnow()
        await self.save(INTEGRATIONS, integration.id, integration.to_document())
        return integration

    async def list_integrations(self, status: Optional[str] = None) -> List[Integration]:
        filters = {"status": status} if status else None
        docs = await self.find(INTEGRATIONS, filters)
        return [Integration.from_document(d["id"], d) for d in docs]

    async def update_integration(self, integration_id: str, updates: Dict[str, Any]) -> bool:
        updates = {**updates, "updated_at": datetime.utcnow()}
        return await self.update(INTEGRATIONS, integration_id, _serialize(updates))

    # Mapping groups

    async def save_mapping_group(self, mapping: MappingGroup) -> MappingGroup:
        await self.save(MAPPINGS, mapping.id, mapping.to_document())
        return mapping

    async def get_mapping_group(self, mapping_id: str) -> Optional[MappingGroup]:
        data = await self.find_by_id(MAPPINGS, mapping_id)
        return MappingGroup.from_document(mapping_id, data) if data else None

    async def list_mapping_groups(self, integration_id: str) -> List[MappingGroup]:
        docs = await self.find(MAPPINGS, {"integration_id": integration_id})
        return [MappingGroup.from_document(d["id"], d) for d in docs]

    async def update_mapping_group(self, mapping_id: str, updates: Dict[str, Any]) -> bool:
        return await self.update(MAPPINGS, mapping_id, _serialize(updates))

    # Field mappings

    async def save_field_mapping(self, field_mapping: FieldMapping) -> FieldMapping:
        await self.save(FIELD_MAPPINGS, field_mapping.id, field_mapping.to_document())
        return field_mapping

    async def list_field_mappings(self, mapping_id: str) -> List[FieldMapping]:
        docs = await self.find(FIELD_MAPPINGS, {"mapping_id": mapping_id})
        return [FieldMapping.from_document(d["id"], d) for d in docs]

    # Sync run logs

    async def save_sync_log(self, sync_log: SyncRunLog) -> SyncRunLog:
        await self.save(SYNC_LOGS, sync_log.id, sync_log.to_document())
        return sync_log

    async def get_sync_log(self, sync_log_id: str) -> Optional[SyncRunLog]:
        data = await self.find_by_id(SYNC_LOGS, sync_log_id)
        return SyncRunLog.from_document(sync_log_id, data) if data else None

    async def list_sync_logs(self, integration_id: Optional[str] = None, limit: int = 50) -> List[SyncRunLog]:
        filters = {"integration_id": integration_id} if integration_id else None
        docs = await self.find(SYNC_LOGS, filters, order_by="start_time", descending=True, limit=limit)
        return [SyncRunLog.from_document(d["id"], d) for d in docs]


def _serialize(updates: Dict[str, Any]) -> Dict[str, Any]:
    """Make partial updates JSON-safe the same way to_document() does."""
    result = {}
    for key, value in updates.items():
        if isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        result[key] = value
    return result


class InMemoryStore(SyncStore):
    """Dictionary-backed store for tests and local runs."""

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    def _collection(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self._collections.setdefault(name, {})

    async def find_by_id(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        doc = self._collection(collection).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def find(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        filters = filters or {}
        docs = [
            {**copy.deepcopy(doc), "id": doc_id}
            for doc_id, doc in self._collection(collection).items()
            if all(doc.get(k) == v for k, v in filters.items())
        ]
        if order_by:
            docs.sort(key=lambda d: (d.get(order_by) is None, d.get(order_by) or ""), reverse=descending)
        return docs[:limit] if limit else docs

    async def save(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        async with self._lock:
            self._collection(collection)[doc_id] = copy.deepcopy(data)
        logger.debug(f"Saved {collection}/{doc_id}")

    async def update(self, collection: str, doc_id: str, updates: Dict[str, Any]) -> bool:
        async with self._lock:
            doc = self._collection(collection).get(doc_id)
            if doc is None:
                return False
            doc.update(copy.deepcopy(updates))
        logger.debug(f"Updated {collection}/{doc_id}")
        return True

    async def delete(self, collection: str, doc_id: str) -> bool:
        async with self._lock:
            return self._collection(collection).pop(doc_id, None) is not None
