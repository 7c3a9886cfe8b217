"""
Secret Manager service for retrieving connector credentials.
"""

import logging
import os
from typing import Dict, Optional

from google.cloud import secretmanager

logger = logging.getLogger(__name__)

# Credential keys looked up per connector, as "<connector>-<key>" secrets
# or "<CONNECTOR>_<KEY>" environment variables.
CONNECTOR_CREDENTIAL_KEYS = {
    "hubspot": ["api_key", "client_id", "client_secret"],
}


class SecretManagerService:
    """Service for retrieving secrets from Google Secret Manager."""

    def __init__(self, project_id: Optional[str] = None):
        """Initialize Secret Manager service."""
        self.project_id = project_id or os.getenv("GOOGLE_CLOUD_PROJECT")
        if not self.project_id:
            raise ValueError("GOOGLE_CLOUD_PROJECT environment variable must be set")

        self.client = secretmanager.SecretManagerServiceClient()
        self._cache: Dict[str, str] = {}

    def get_secret(self, secret_name: str, version: str = "latest") -> str:
        """Retrieve a secret value from Secret Manager."""
        cache_key = f"{secret_name}:{version}"

        if cache_key in self._cache:
            return self._cache[cache_key]

        try:
            secret_path = f"projects/{self.project_id}/secrets/{secret_name}/versions/{version}"
            response = self.client.access_secret_version(request={"name": secret_path})
            secret_value = response.payload.data.decode("UTF-8")

            self._cache[cache_key] = secret_value
            logger.info(f"Retrieved secret: {secret_name}")
            return secret_value

        except Exception as e:
            logger.error(f"Failed to retrieve secret {secret_name}: {e}")
            raise

    def get_connector_credentials(self, connector_id: str) -> Dict[str, str]:
        """
        Get the credential map for a connector.

        Falls back to environment variables when the secrets are not available.
        Keys with no value are left out.
        """
        keys = CONNECTOR_CREDENTIAL_KEYS.get(connector_id, ["api_key"])
        try:
            credentials = {key: self.get_secret(f"{connector_id}-{key.replace('_', '-')}") for key in keys}
        except Exception as e:
            logger.warning(f"Failed to retrieve {connector_id} credentials from Secret Manager: {e}")
            credentials = {key: os.getenv(f"{connector_id.upper()}_{key.upper()}", "") for key in keys}
        return {key: value for key, value in credentials.items() if value}
