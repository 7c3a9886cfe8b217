"""
Connector registry: resolves connector ids to connector instances.
"""

import logging
from typing import Callable, Dict, List, Optional

from .base import BaseConnector

logger = logging.getLogger(__name__)

ConnectorFactory = Callable[[], BaseConnector]


class ConnectorRegistry:
    """
    Holds connector factories and the instances created from them.

    Registries are built explicitly and handed to the sync engine; there is
    no module-level default instance.
    """

    def __init__(self):
        self._connectors: Dict[str, BaseConnector] = {}
        self._factories: Dict[str, ConnectorFactory] = {}

    def register_factory(self, connector_id: str, factory: ConnectorFactory) -> None:
        """Register a factory; the instance is created on first lookup."""
        self._factories[connector_id] = factory
        logger.info(f"Registered connector factory: {connector_id}")

    def register(self, connector: BaseConnector, connector_id: Optional[str] = None) -> None:
        """Register a ready-made connector instance."""
        key = connector_id or connector.id
        if not key:
            raise ValueError(f"{connector.__class__.__name__} has no id to register under")
        self._connectors[key] = connector
        logger.info(f"Registered connector instance: {key}")

    def get_connector(self, connector_id: str) -> Optional[BaseConnector]:
        """Return the connector for an id, creating it from its factory if needed."""
        if connector_id in self._connectors:
            return self._connectors[connector_id]

        factory = self._factories.get(connector_id)
        if factory is not None:
            connector = factory()
            self._connectors[connector_id] = connector
            logger.info(f"Created connector instance: {connector_id}")
            return connector

        logger.warning(f"Connector not found: {connector_id}")
        return None

    def create_connector(self, connector_id: str) -> Optional[BaseConnector]:
        """
        Return a connector owned by a single sync run.

        Factories are called on every request so credentials applied during
        one run never leak into another. Connectors registered as instances
        are shared and returned as-is.
        """
        factory = self._factories.get(connector_id)
        if factory is not None:
            logger.debug(f"Creating run-scoped connector: {connector_id}")
            return factory()
        if connector_id in self._connectors:
            return self._connectors[connector_id]

        logger.warning(f"Connector not found: {connector_id}")
        return None

    def get_available_connector_types(self) -> List[str]:
        return sorted(set(self._factories) | set(self._connectors))

    def get_all_connectors(self) -> List[BaseConnector]:
        return list(self._connectors.values())

    def __contains__(self, connector_id: str) -> bool:
        return connector_id in self._connectors or connector_id in self._factories
