"""Tests for the HubSpot connector with a mocked requests session."""

from unittest.mock import Mock

import pytest
import requests

from syncbridge.connectors import AuthToken, QueryOptions
from syncbridge.connectors.hubspot import HubSpotConnector
from syncbridge.exceptions import AuthenticationError, HubSpotAPIError


def make_response(payload=None, status_code=200):
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    response.content = b"{}" if payload is not None else b""
    response.json.return_value = payload
    if status_code >= 400:
        error = requests.exceptions.HTTPError(f"{status_code} error")
        error.response = response
        response.raise_for_status.side_effect = error
    return response


class TestHubSpotConnector:

    @pytest.fixture
    def connector(self):
        connector = HubSpotConnector(client_id="cid", client_secret="csecret")
        connector.session = Mock()
        connector.session.headers = {}
        return connector

    @pytest.mark.asyncio
    async def test_requires_authentication(self, connector):
        with pytest.raises(HubSpotAPIError):
            await connector.query("contacts")

    @pytest.mark.asyncio
    async def test_api_key_authentication(self, connector):
        token = await connector.authenticate({"api_key": "pat-123"})
        assert token.access_token == "pat-123"
        assert connector.session.headers["Authorization"] == "Bearer pat-123"

    @pytest.mark.asyncio
    async def test_oauth_code_exchange(self, connector):
        connector.session.post.return_value = make_response(
            {"access_token": "at", "refresh_token": "rt", "expires_in": 1800}
        )
        token = await connector.authenticate({"code": "abc", "redirect_uri": "https://app/cb"})

        assert token.access_token == "at"
        assert token.refresh_token == "rt"
        form = connector.session.post.call_args.kwargs["data"]
        assert form["grant_type"] == "authorization_code"
        assert form["client_id"] == "cid"

    @pytest.mark.asyncio
    async def test_oauth_failure_raises_authentication_error(self, connector):
        connector.session.post.return_value = make_response({"message": "bad code"}, status_code=400)
        with pytest.raises(AuthenticationError):
            await connector.authenticate({"code": "bad"})

    @pytest.mark.asyncio
    async def test_refresh_requires_refresh_token(self, connector):
        with pytest.raises(AuthenticationError):
            await connector.refresh_token(AuthToken(access_token="at"))

    @pytest.mark.asyncio
    async def test_query_builds_search_request(self, connector):
        await connector.authenticate({"api_key": "pat"})
        connector.session.request.return_value = make_response({
            "total": 3,
            "results": [{"id": "101", "properties": {"email": "a@x.io"}}],
            "paging": {"next": {"after": "1"}},
        })

        result = await connector.query("contacts", {"email": "a@x.io"}, QueryOptions(limit=1, offset=0))

        method, url = connector.session.request.call_args.args
        body = connector.session.request.call_args.kwargs["json"]
        assert (method, url) == ("POST", "https://api.hubapi.com/crm/v3/objects/contacts/search")
        assert body["filterGroups"] == [{"filters": [
            {"propertyName": "email", "operator": "EQ", "value": "a@x.io"}
        ]}]
        assert body["limit"] == 1
        assert result.records == [{"id": "101", "email": "a@x.io"}]
        assert result.total_count == 3
        assert result.has_more is True

    @pytest.mark.asyncio
    async def test_last_page_has_no_more(self, connector):
        await connector.authenticate({"api_key": "pat"})
        connector.session.request.return_value = make_response({"total": 1, "results": [], "paging": None})
        result = await connector.query("contacts")
        assert result.has_more is False

    @pytest.mark.asyncio
    async def test_entity_fields(self, connector):
        await connector.authenticate({"api_key": "pat"})
        connector.session.request.return_value = make_response({"results": [
            {"name": "email", "label": "Email", "type": "string"},
            {"name": "lifecyclestage", "label": "Stage", "type": "enumeration",
             "options": [{"value": "lead"}, {"value": "customer"}],
             "modificationMetadata": {"readOnlyValue": True}},
        ]})

        fields = await connector.get_entity_fields("contacts")

        assert [f.id for f in fields] == ["email", "lifecyclestage"]
        assert fields[1].data_type == "enum"
        assert fields[1].enum_values == ["lead", "customer"]
        assert fields[1].is_read_only is True

    @pytest.mark.asyncio
    async def test_create_error_is_reported_not_raised(self, connector):
        await connector.authenticate({"api_key": "pat"})
        connector.session.request.return_value = make_response({"message": "Property invalid"}, status_code=400)

        result = await connector.create("contacts", {"email": "bad"})

        assert result.success is False
        assert "Property invalid" in result.error

    @pytest.mark.asyncio
    async def test_update_patches_properties(self, connector):
        await connector.authenticate({"api_key": "pat"})
        connector.session.request.return_value = make_response({"id": "101", "properties": {"email": "n@x.io"}})

        result = await connector.update("contacts", "101", {"email": "n@x.io"})

        assert result.success is True
        method, url = connector.session.request.call_args.args
        assert (method, url) == ("PATCH", "https://api.hubapi.com/crm/v3/objects/contacts/101")
        assert connector.session.request.call_args.kwargs["json"] == {"properties": {"email": "n@x.io"}}

    @pytest.mark.asyncio
    async def test_entities_are_fixed(self, connector):
        entities = await connector.get_entities()
        assert "contacts" in [e.id for e in entities]
