"""
HubSpot CRM connector.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..exceptions import AuthenticationError, HubSpotAPIError
from .base import (
    AuthMethod, AuthToken, BaseConnector, ConnectorCapability, Entity,
    EntityField, OperationResult, QueryOptions, QueryResult, ReadOptions,
)

logger = logging.getLogger(__name__)

TOKEN_URL = "https://api.hubapi.com/oauth/v1/token"

HUBSPOT_TYPES = {
    "string": "string",
    "number": "number",
    "date": "date",
    "datetime": "datetime",
    "enumeration": "enum",
    "bool": "boolean",
}


class HubSpotConnector(BaseConnector):
    """
    HubSpot CRM v3 connector.

    Supports private-app tokens / API keys and OAuth2. Calls go through a
    retrying ``requests`` session and run in a worker thread so the event
    loop is never blocked.
    """

    id = "hubspot"
    name = "HubSpot"
    description = "Connect with HubSpot CRM"

    def __init__(
        self,
        base_url: str = "https://api.hubapi.com",
        timeout: float = 10.0,
        max_retries: int = 3,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.client_id = client_id
        self.client_secret = client_secret

        # Configure session with retries
        self.session = requests.Session()
        retry_strategy = Retry(
            total=max_retries,
            status_forcelist=[429, 500, 502, 503, 504],
            backoff_factor=1
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)
        self.session.headers.update({
            'Content-Type': 'application/json',
            'User-Agent': 'SyncBridge-HubSpot/1.0.0'
        })
        self._authenticated = False

    def get_capabilities(self) -> ConnectorCapability:
        return ConnectorCapability(
            can_create=True,
            can_read=True,
            can_update=True,
            can_delete=True,
            can_query=True,
        )

    def get_supported_auth_methods(self) -> List[AuthMethod]:
        return [
            AuthMethod(type="oauth2", config={
                "authorization_url": "https://app.hubspot.com/oauth/authorize",
                "token_url": TOKEN_URL,
                "scope": "contacts content",
            }),
            AuthMethod(type="api_key", config={"name": "Authorization", "in": "header"}),
        ]

    # HTTP plumbing

    def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """Make a request to the HubSpot API.

        Raises:
            HubSpotAPIError: If the API request fails
        """
        url = f"{self.base_url}{endpoint}"
        try:
            logger.debug(f"Making {method} request to {url}")
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            if response.status_code == 401:
                logger.warning("HubSpot token expired or invalid")
            response.raise_for_status()
            return response.json() if response.content else {}
        except requests.exceptions.RequestException as e:
            logger.error(f"HubSpot API request failed: {e}")
            if getattr(e, 'response', None) is not None:
                try:
                    error_data = e.response.json()
                except ValueError:
                    error_data = e.response.text
                raise HubSpotAPIError(f"API Error: {error_data}") from e
            raise HubSpotAPIError(f"Request failed: {e}") from e

    async def _call(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        self._ensure_authenticated()
        return await asyncio.to_thread(self._request, method, endpoint, **kwargs)

    def _ensure_authenticated(self) -> None:
        if not self._authenticated:
            raise HubSpotAPIError("HubSpot client not initialized. Call authenticate() first.")

    def _use_token(self, access_token: str) -> None:
        self.session.headers['Authorization'] = f"Bearer {access_token}"
        self._authenticated = True

    def _token_request(self, form: Dict[str, str]) -> Dict[str, Any]:
        response = self.session.post(
            TOKEN_URL,
            data=form,
            headers={'Content-Type': 'application/x-www-form-urlencoded'},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    # Authentication

    async def authenticate(self, credentials: Dict[str, Any]) -> AuthToken:
        logger.info("Authenticating with HubSpot")
        api_key = credentials.get("api_key") or credentials.get("access_token")
        if api_key:
            self._use_token(api_key)
            return AuthToken(access_token=api_key, expires_at=datetime.utcnow() + timedelta(days=365))

        try:
            data = await asyncio.to_thread(self._token_request, {
                "grant_type": "authorization_code",
                "client_id": credentials.get("client_id") or self.client_id or "",
                "client_secret": credentials.get("client_secret") or self.client_secret or "",
                "redirect_uri": credentials.get("redirect_uri", ""),
                "code": credentials.get("code", ""),
            })
        except requests.exceptions.RequestException as e:
            logger.error(f"HubSpot authentication error: {e}")
            raise AuthenticationError("Failed to authenticate with HubSpot") from e

        self._use_token(data["access_token"])
        return AuthToken(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_at=datetime.utcnow() + timedelta(seconds=data.get("expires_in", 0)),
        )

    async def refresh_token(self, token: AuthToken) -> AuthToken:
        if not token.refresh_token:
            raise AuthenticationError("No refresh token available")

        try:
            data = await asyncio.to_thread(self._token_request, {
                "grant_type": "refresh_token",
                "client_id": self.client_id or "",
                "client_secret": self.client_secret or "",
                "refresh_token": token.refresh_token,
            })
        except requests.exceptions.RequestException as e:
            logger.error(f"HubSpot token refresh error: {e}")
            raise AuthenticationError("Failed to refresh HubSpot token") from e

        self._use_token(data["access_token"])
        return AuthToken(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or token.refresh_token,
            expires_at=datetime.utcnow() + timedelta(seconds=data.get("expires_in", 0)),
        )

    # Schema

    async def get_entities(self) -> List[Entity]:
        # HubSpot has fixed CRM objects
        return [
            Entity(id="contacts", name="contacts", display_name="Contacts"),
            Entity(id="companies", name="companies", display_name="Companies"),
            Entity(id="deals", name="deals", display_name="Deals"),
            Entity(id="tickets", name="tickets", display_name="Tickets"),
            Entity(id="products", name="products", display_name="Products"),
        ]

    async def get_entity_fields(self, entity_id: str) -> List[EntityField]:
        data = await self._call("GET", f"/crm/v3/properties/{entity_id}")
        return [
            EntityField(
                id=prop["name"],
                entity_id=entity_id,
                name=prop["name"],
                display_name=prop.get("label") or prop["name"],
                description=prop.get("description"),
                data_type=HUBSPOT_TYPES.get(prop.get("type"), "string"),
                is_required=bool(prop.get("required", False)),
                is_read_only=bool((prop.get("modificationMetadata") or {}).get("readOnlyValue", False)),
                default_value=prop.get("defaultValue"),
                enum_values=[o["value"] for o in prop.get("options") or []] or None,
            )
            for prop in data.get("results", [])
        ]

    # Records

    async def _query(self, entity_id: str, filters: Dict[str, Any], options: QueryOptions) -> QueryResult:
        body: Dict[str, Any] = {
            "filterGroups": [{
                "filters": [
                    {"propertyName": key, "operator": "EQ", "value": str(value)}
                    for key, value in filters.items()
                ]
            }] if filters else [],
            "limit": options.limit or 100,
        }
        if options.offset:
            body["after"] = str(options.offset)
        if options.fields:
            body["properties"] = options.fields
        if options.order_by:
            body["sorts"] = [{
                "propertyName": options.order_by,
                "direction": "DESCENDING" if options.order_direction == "desc" else "ASCENDING",
            }]

        data = await self._call("POST", f"/crm/v3/objects/{entity_id}/search", json=body)
        return QueryResult(
            records=[{"id": r["id"], **(r.get("properties") or {})} for r in data.get("results", [])],
            total_count=data.get("total", 0),
            has_more=bool(((data.get("paging") or {}).get("next") or {}).get("after")),
        )

    async def _create(self, entity_id: str, data: Dict[str, Any]) -> OperationResult:
        response = await self._call("POST", f"/crm/v3/objects/{entity_id}", json={"properties": data})
        return OperationResult(success=True, id=response.get("id"), data=response.get("properties"))

    async def _read(self, entity_id: str, record_id: str, options: ReadOptions) -> OperationResult:
        params = {"properties": ",".join(options.fields)} if options.fields else None
        response = await self._call("GET", f"/crm/v3/objects/{entity_id}/{record_id}", params=params)
        return OperationResult(success=True, id=record_id, data=response.get("properties"))

    async def _update(self, entity_id: str, record_id: str, data: Dict[str, Any]) -> OperationResult:
        response = await self._call("PATCH", f"/crm/v3/objects/{entity_id}/{record_id}", json={"properties": data})
        return OperationResult(success=True, id=record_id, data=response.get("properties"))

    async def _delete(self, entity_id: str, record_id: str) -> OperationResult:
        await self._call("DELETE", f"/crm/v3/objects/{entity_id}/{record_id}")
        return OperationResult(success=True, id=record_id)
