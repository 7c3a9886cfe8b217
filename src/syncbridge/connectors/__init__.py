"""
Connector framework for SyncBridge.

This package contains the connector contract and the connectors that can be
used as sources or targets for synchronization.
"""

from typing import Dict, Optional

from ..core.config import Settings
from .base import (
    BaseConnector, ConnectorCapability, AuthMethod, AuthToken, Entity,
    EntityField, QueryOptions, QueryResult, ReadOptions, OperationResult,
)
from .registry import ConnectorRegistry
from .memory import InMemoryConnector
from .hubspot import HubSpotConnector

__all__ = [
    "BaseConnector",
    "ConnectorCapability",
    "AuthMethod",
    "AuthToken",
    "Entity",
    "EntityField",
    "QueryOptions",
    "QueryResult",
    "ReadOptions",
    "OperationResult",
    "ConnectorRegistry",
    "InMemoryConnector",
    "HubSpotConnector",
    "create_default_registry",
]


def create_default_registry(
    settings: Optional[Settings] = None,
    credentials: Optional[Dict[str, Dict[str, str]]] = None,
) -> ConnectorRegistry:
    """
    Build a registry with the built-in connectors.

    Args:
        settings: Timeouts and retry budget for HTTP connectors
        credentials: App-level credentials per connector id, e.g. HubSpot OAuth client id/secret
    """
    settings = settings or Settings()
    hubspot_credentials = (credentials or {}).get("hubspot", {})
    registry = ConnectorRegistry()
    registry.register_factory("hubspot", lambda: HubSpotConnector(
        timeout=settings.connector_timeout_seconds,
        max_retries=settings.max_sync_retries,
        client_id=hubspot_credentials.get("client_id"),
        client_secret=hubspot_credentials.get("client_secret"),
    ))
    # Holds its records in the instance, so every run shares it
    registry.register(InMemoryConnector("memory"))
    return registry
