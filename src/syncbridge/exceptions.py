"""
Custom exceptions for the SyncBridge application.
"""

class SyncBridgeException(Exception):
    """Base exception for all application-specific errors."""
    pass

class ConfigurationError(SyncBridgeException):
    """Error related to integration or mapping configuration."""
    pass

class IntegrationNotFoundError(ConfigurationError):
    """The requested integration does not exist."""

    def __init__(self, integration_id: str):
        self.integration_id = integration_id
        super().__init__(f"Integration not found: {integration_id}")

class ConnectorNotFoundError(ConfigurationError):
    """No connector is registered under the requested identifier."""

    def __init__(self, connector_id: str):
        self.connector_id = connector_id
        super().__init__(f"Connector not found: {connector_id}")

class UnsupportedSyncDirectionError(ConfigurationError):
    """The integration asks for a sync direction the engine cannot run."""
    pass

class SyncAlreadyRunningError(SyncBridgeException):
    """A sync for the same integration is already in flight."""
    pass

class ExecutionError(SyncBridgeException):
    """Error during sync execution."""
    pass

class ConnectorError(SyncBridgeException):
    """Error related to a connector."""
    pass

class AuthenticationError(ConnectorError):
    """Credentials were rejected or a token could not be refreshed."""
    pass

# Specific API error classes for connectors
class HubSpotAPIError(ConnectorError):
    """Exception raised for HubSpot API errors."""
    pass
