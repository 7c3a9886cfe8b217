"""Tests for the store contract (in-memory) and the Firestore adapter."""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from google.api_core.exceptions import NotFound

from syncbridge.models import Integration, IntegrationStatus, SyncRunLog
from syncbridge.services.firestore import FirestoreStore
from syncbridge.services.store import INTEGRATIONS, InMemoryStore


class TestInMemoryStore:

    @pytest.mark.asyncio
    async def test_integration_round_trip(self, store):
        await store.save_integration(Integration(
            id="int-1", name="n", source_connector_id="a", target_connector_id="b",
            source_auth={"api_key": "k"},
        ))
        loaded = await store.get_integration("int-1")
        assert loaded.source_auth == {"api_key": "k"}
        assert await store.get_integration("missing") is None

    @pytest.mark.asyncio
    async def test_update_serializes_enums_and_datetimes(self, store):
        await store.save_integration(Integration(id="int-1", name="n", source_connector_id="a", target_connector_id="b"))
        synced_at = datetime(2024, 1, 2, 3, 4, 5)

        assert await store.update_integration("int-1", {
            "status": IntegrationStatus.ACTIVE, "last_sync_at": synced_at,
        }) is True

        raw = await store.find_by_id(INTEGRATIONS, "int-1")
        assert raw["status"] == "active"
        assert raw["last_sync_at"] == synced_at.isoformat()
        loaded = await store.get_integration("int-1")
        assert loaded.status == IntegrationStatus.ACTIVE
        assert loaded.last_sync_at == synced_at

    @pytest.mark.asyncio
    async def test_update_missing_returns_false(self, store):
        assert await store.update_integration("missing", {"status": "active"}) is False

    @pytest.mark.asyncio
    async def test_mapping_queries_are_scoped(self, seeded_store):
        groups = await seeded_store.list_mapping_groups("int-1")
        assert [g.id for g in groups] == ["map-1"]
        assert await seeded_store.list_mapping_groups("int-2") == []

        field_mappings = await seeded_store.list_field_mappings("map-1")
        assert {fm.id for fm in field_mappings} == {"fm-email", "fm-name", "fm-tier"}

    @pytest.mark.asyncio
    async def test_sync_logs_newest_first(self, store):
        for day in (1, 3, 2):
            await store.save_sync_log(SyncRunLog(
                id=f"run-{day}", integration_id="int-1", start_time=datetime(2024, 1, day),
            ))
        await store.save_sync_log(SyncRunLog(id="other", integration_id="int-2"))

        logs = await store.list_sync_logs("int-1", limit=2)
        assert [log.id for log in logs] == ["run-3", "run-2"]

    @pytest.mark.asyncio
    async def test_delete(self):
        store = InMemoryStore()
        await store.save("things", "1", {"a": 1})
        assert await store.delete("things", "1") is True
        assert await store.delete("things", "1") is False


class TestFirestoreStore:

    @pytest.fixture
    def client(self):
        with patch("syncbridge.services.firestore.firestore.AsyncClient") as client_cls:
            client = client_cls.return_value
            client.project = "test-project"
            yield client

    @pytest.fixture
    def doc_ref(self, client):
        doc_ref = MagicMock()
        doc_ref.get = AsyncMock()
        doc_ref.set = AsyncMock()
        doc_ref.update = AsyncMock()
        doc_ref.delete = AsyncMock()
        client.collection.return_value.document.return_value = doc_ref
        return doc_ref

    @pytest.mark.asyncio
    async def test_find_by_id(self, client, doc_ref):
        doc_ref.get.return_value = MagicMock(exists=True, to_dict=lambda: {"name": "n"})
        store = FirestoreStore(project_id="test-project", collection_prefix="dev_")

        assert await store.find_by_id("integrations", "int-1") == {"name": "n"}
        client.collection.assert_called_with("dev_integrations")

    @pytest.mark.asyncio
    async def test_update_missing_document_returns_false(self, client, doc_ref):
        doc_ref.update.side_effect = NotFound("missing")
        store = FirestoreStore(project_id="test-project")

        assert await store.update("integrations", "int-1", {"status": "active"}) is False

    @pytest.mark.asyncio
    async def test_find_applies_filters_and_ordering(self, client):
        doc = MagicMock(id="run-1", to_dict=lambda: {"integration_id": "int-1"})

        async def stream():
            yield doc

        query = MagicMock()
        query.where.return_value = query
        query.order_by.return_value = query
        query.limit.return_value = query
        query.stream.side_effect = stream
        client.collection.return_value = query

        store = FirestoreStore(project_id="test-project")
        docs = await store.find("sync_logs", {"integration_id": "int-1"}, order_by="start_time",
                                descending=True, limit=5)

        assert docs == [{"integration_id": "int-1", "id": "run-1"}]
        query.where.assert_called_once_with("integration_id", "==", "int-1")
        query.limit.assert_called_once_with(5)
