"""
In-memory connector, useful for local runs, demos and tests.
"""

import asyncio
import copy
import logging
import secrets
import uuid
from typing import Any, Dict, List, Optional

from ..exceptions import AuthenticationError, ConnectorError
from .base import (
    AuthMethod, AuthToken, BaseConnector, ConnectorCapability, Entity,
    EntityField, OperationResult, QueryOptions, QueryResult, ReadOptions,
)

logger = logging.getLogger(__name__)


class InMemoryConnector(BaseConnector):
    """
    Connector backed by plain dictionaries.

    Entities are declared with their field definitions; records are kept
    per entity and keyed by their ``id``.
    """

    name = "In-Memory"
    description = "Dictionary-backed connector for local development and tests"

    def __init__(self, connector_id: str = "memory", api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.id = connector_id
        self.api_key = api_key
        self._entities: Dict[str, Entity] = {}
        self._fields: Dict[str, List[EntityField]] = {}
        self._records: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    def get_capabilities(self) -> ConnectorCapability:
        return ConnectorCapability(
            can_create=True,
            can_read=True,
            can_update=True,
            can_delete=True,
            can_query=True,
        )

    # Setup helpers

    def add_entity(self, entity_id: str, fields: List[Any], display_name: Optional[str] = None) -> Entity:
        """Declare an entity. ``fields`` may be EntityField objects or bare field names."""
        entity = Entity(id=entity_id, name=entity_id, display_name=display_name or entity_id.title())
        self._entities[entity_id] = entity
        self._fields[entity_id] = [
            f if isinstance(f, EntityField) else EntityField(
                id=f, entity_id=entity_id, name=f, display_name=f, data_type="string"
            )
            for f in fields
        ]
        self._records.setdefault(entity_id, {})
        return entity

    def seed(self, entity_id: str, records: List[Dict[str, Any]]) -> None:
        """Load records directly, bypassing create()."""
        store = self._records.setdefault(entity_id, {})
        for record in records:
            record_id = str(record.get("id") or uuid.uuid4())
            store[record_id] = {**copy.deepcopy(record), "id": record_id}

    def records(self, entity_id: str) -> List[Dict[str, Any]]:
        return [copy.deepcopy(r) for r in self._records.get(entity_id, {}).values()]

    # Authentication

    def get_supported_auth_methods(self) -> List[AuthMethod]:
        return [AuthMethod(type="api_key", config={"name": "api_key"})]

    async def authenticate(self, credentials: Dict[str, Any]) -> AuthToken:
        supplied = credentials.get("api_key")
        if self.api_key is not None and supplied != self.api_key:
            raise AuthenticationError(f"Invalid API key for connector {self.id}")
        return AuthToken(access_token=supplied or secrets.token_hex(8))

    async def refresh_token(self, token: AuthToken) -> AuthToken:
        if not token.refresh_token:
            raise AuthenticationError("No refresh token available")
        return AuthToken(access_token=secrets.token_hex(8), refresh_token=token.refresh_token)

    # Schema

    async def get_entities(self) -> List[Entity]:
        return list(self._entities.values())

    async def get_entity_fields(self, entity_id: str) -> List[EntityField]:
        if entity_id not in self._fields:
            raise ConnectorError(f"Unknown entity {entity_id} on connector {self.id}")
        return list(self._fields[entity_id])

    # Records

    async def _query(self, entity_id: str, filters: Dict[str, Any], options: QueryOptions) -> QueryResult:
        if entity_id not in self._records:
            raise ConnectorError(f"Unknown entity {entity_id} on connector {self.id}")

        matches = [
            r for r in self._records[entity_id].values()
            if all(r.get(key) == value for key, value in filters.items())
        ]
        if options.order_by:
            matches.sort(
                key=lambda r: (r.get(options.order_by) is None, str(r.get(options.order_by))),
                reverse=options.order_direction == "desc",
            )

        offset = options.offset or 0
        end = offset + options.limit if options.limit else None
        page = matches[offset:end]
        if options.fields:
            page = [{k: v for k, v in r.items() if k in options.fields or k == "id"} for r in page]

        return QueryResult(
            records=copy.deepcopy(page),
            total_count=len(matches),
            has_more=end is not None and end < len(matches),
        )

    async def _create(self, entity_id: str, data: Dict[str, Any]) -> OperationResult:
        async with self._lock:
            record_id = str(data.get("id") or uuid.uuid4())
            record = {**copy.deepcopy(data), "id": record_id}
            self._records.setdefault(entity_id, {})[record_id] = record
        return OperationResult(success=True, id=record_id, data=copy.deepcopy(record))

    async def _read(self, entity_id: str, record_id: str, options: ReadOptions) -> OperationResult:
        record = self._records.get(entity_id, {}).get(record_id)
        if record is None:
            return OperationResult(success=False, id=record_id, error=f"{entity_id}/{record_id} not found")
        data = copy.deepcopy(record)
        if options.fields:
            data = {k: v for k, v in data.items() if k in options.fields}
        return OperationResult(success=True, id=record_id, data=data)

    async def _update(self, entity_id: str, record_id: str, data: Dict[str, Any]) -> OperationResult:
        async with self._lock:
            record = self._records.get(entity_id, {}).get(record_id)
            if record is None:
                return OperationResult(success=False, id=record_id, error=f"{entity_id}/{record_id} not found")
            record.update(copy.deepcopy(data))
            record["id"] = record_id
        return OperationResult(success=True, id=record_id, data=copy.deepcopy(record))

    async def _delete(self, entity_id: str, record_id: str) -> OperationResult:
        async with self._lock:
            removed = self._records.get(entity_id, {}).pop(record_id, None)
        if removed is None:
            return OperationResult(success=False, id=record_id, error=f"{entity_id}/{record_id} not found")
        return OperationResult(success=True, id=record_id)
