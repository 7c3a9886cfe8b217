"""
Base connector class for all external system adapters.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Any, Optional
from pydantic import BaseModel, Field
import logging

logger = logging.getLogger(__name__)


class ConnectorCapability(BaseModel):
    """Defines what operations a connector supports."""
    can_create: bool = False
    can_read: bool = False
    can_update: bool = False
    can_delete: bool = False
    can_query: bool = True


class AuthMethod(BaseModel):
    """An authentication scheme a connector accepts."""
    type: str  # "oauth2", "api_key", "basic", "custom"
    config: Dict[str, Any] = Field(default_factory=dict)


class AuthToken(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    additional_data: Dict[str, Any] = Field(default_factory=dict)


class Entity(BaseModel):
    """A record type exposed by a connector, e.g. contacts."""
    id: str
    name: str
    display_name: str
    description: Optional[str] = None


class EntityField(BaseModel):
    """Defines a typed attribute of an entity."""
    id: str
    entity_id: Optional[str] = None
    name: str
    display_name: str
    description: Optional[str] = None
    data_type: str  # "string", "number", "boolean", "date", "datetime", "enum"
    is_required: bool = False
    is_read_only: bool = False
    default_value: Optional[Any] = None
    enum_values: Optional[List[str]] = None


class ReadOptions(BaseModel):
    fields: Optional[List[str]] = None
    include_related: bool = False


class QueryOptions(BaseModel):
    fields: Optional[List[str]] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    order_by: Optional[str] = None
    order_direction: str = Field("asc", pattern="^(asc|desc)$")


class QueryResult(BaseModel):
    records: List[Dict[str, Any]] = Field(default_factory=list)
    total_count: int = 0
    has_more: bool = False


class OperationResult(BaseModel):
    """Outcome of create/read/update/delete. Failures are reported, not raised."""
    success: bool
    id: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class BaseConnector(ABC):
    """
    Abstract base class for connectors.

    All operations are coroutines. The public CRUD methods check
    capabilities and convert exceptions from the ``_create``/``_read``/
    ``_update``/``_delete`` hooks into failed ``OperationResult`` objects.
    Schema, query and authentication methods raise on failure.
    """

    id: str = ""
    name: str = ""
    version: str = "1.0.0"
    description: str = ""

    def __init__(self, **kwargs):
        """
        Initialize the connector.

        Args:
            **kwargs: Connector-specific configuration parameters
        """
        self.config = kwargs
        logger.info(f"Initialized {self.__class__.__name__} connector")

    @abstractmethod
    def get_capabilities(self) -> ConnectorCapability:
        """Return what operations this connector supports."""
        pass

    # Authentication

    @abstractmethod
    def get_supported_auth_methods(self) -> List[AuthMethod]:
        pass

    @abstractmethod
    async def authenticate(self, credentials: Dict[str, Any]) -> AuthToken:
        """Authenticate; raises AuthenticationError on bad credentials."""
        pass

    @abstractmethod
    async def refresh_token(self, token: AuthToken) -> AuthToken:
        """Refresh a token; raises AuthenticationError without a refresh token."""
        pass

    # Schema

    @abstractmethod
    async def get_entities(self) -> List[Entity]:
        pass

    @abstractmethod
    async def get_entity_fields(self, entity_id: str) -> List[EntityField]:
        pass

    # Query

    async def query(
        self,
        entity_id: str,
        filters: Optional[Dict[str, Any]] = None,
        options: Optional[QueryOptions] = None,
    ) -> QueryResult:
        """
        Query records matching a flat equality filter.

        Raises:
            NotImplementedError: If the connector cannot query
            ConnectorError: If the external system fails
        """
        if not self.get_capabilities().can_query:
            raise NotImplementedError(f"{self.__class__.__name__} does not support querying")
        return await self._query(entity_id, filters or {}, options or QueryOptions())

    @abstractmethod
    async def _query(self, entity_id: str, filters: Dict[str, Any], options: QueryOptions) -> QueryResult:
        """Service-specific query implementation."""
        pass

    # CRUD Operations

    async def create(self, entity_id: str, data: Dict[str, Any]) -> OperationResult:
        if not self.get_capabilities().can_create:
            return self._unsupported("create", entity_id)
        try:
            return await self._create(entity_id, data)
        except Exception as e:
            logger.error(f"Error creating {self.id} {entity_id}: {e}")
            return OperationResult(success=False, error=str(e))

    async def read(self, entity_id: str, record_id: str, options: Optional[ReadOptions] = None) -> OperationResult:
        if not self.get_capabilities().can_read:
            return self._unsupported("read", entity_id, record_id)
        try:
            return await self._read(entity_id, record_id, options or ReadOptions())
        except Exception as e:
            logger.error(f"Error reading {self.id} {entity_id}/{record_id}: {e}")
            return OperationResult(success=False, id=record_id, error=str(e))

    async def update(self, entity_id: str, record_id: str, data: Dict[str, Any]) -> OperationResult:
        if not self.get_capabilities().can_update:
            return self._unsupported("update", entity_id, record_id)
        try:
            return await self._update(entity_id, record_id, data)
        except Exception as e:
            logger.error(f"Error updating {self.id} {entity_id}/{record_id}: {e}")
            return OperationResult(success=False, id=record_id, error=str(e))

    async def delete(self, entity_id: str, record_id: str) -> OperationResult:
        if not self.get_capabilities().can_delete:
            return self._unsupported("delete", entity_id, record_id)
        try:
            return await self._delete(entity_id, record_id)
        except Exception as e:
            logger.error(f"Error deleting {self.id} {entity_id}/{record_id}: {e}")
            return OperationResult(success=False, id=record_id, error=str(e))

    async def _create(self, entity_id: str, data: Dict[str, Any]) -> OperationResult:
        raise NotImplementedError()

    async def _read(self, entity_id: str, record_id: str, options: ReadOptions) -> OperationResult:
        raise NotImplementedError()

    async def _update(self, entity_id: str, record_id: str, data: Dict[str, Any]) -> OperationResult:
        raise NotImplementedError()

    async def _delete(self, entity_id: str, record_id: str) -> OperationResult:
        raise NotImplementedError()

    def _unsupported(self, operation: str, entity_id: str, record_id: Optional[str] = None) -> OperationResult:
        message = f"{self.__class__.__name__} does not support {operation} on {entity_id}"
        logger.warning(message)
        return OperationResult(success=False, id=record_id, error=message)

    def describe(self) -> Dict[str, Any]:
        """Summary used by the API and CLI connector listings."""
        return {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "capabilities": self.get_capabilities().model_dump(),
            "auth_methods": [m.type for m in self.get_supported_auth_methods()],
        }
