"""Tests for the trigger API."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from syncbridge.api import app as app_module
from syncbridge.engine.sync import SyncEngine
from syncbridge.exceptions import ConnectorError
from syncbridge.models import IntegrationStatus, SyncDirection


@pytest.fixture
def engine(populated_store, registry, settings):
    return SyncEngine(populated_store, registry, settings=settings)


@pytest.fixture
def client(monkeypatch, populated_store, registry, engine):
    monkeypatch.setattr(app_module, "store", populated_store)
    monkeypatch.setattr(app_module, "connector_registry", registry)
    monkeypatch.setattr(app_module, "sync_engine", engine)
    app_module.running_syncs.clear()
    yield TestClient(app_module.app)
    app_module.running_syncs.clear()


class TestHealthAndConnectors:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["services"] == {"store": True, "connector_registry": True, "sync_engine": True}

    def test_list_connectors(self, client):
        data = client.get("/api/v1/connectors").json()
        assert data["connectors"] == ["crm", "warehouse"]
        assert data["details"]["crm"]["capabilities"]["can_query"] is True

    def test_uninitialized_store(self, client, monkeypatch):
        monkeypatch.setattr(app_module, "store", None)
        assert client.get("/api/v1/integrations/int-1/sync-logs").status_code == 500


class TestTriggerSync:

    def test_background_sync(self, client, target, populated_store):
        response = client.post("/api/v1/integrations/int-1/sync", json={"triggered_by": "scheduler"})

        assert response.status_code == 202
        assert response.json() == {"status": "initiated", "integration_id": "int-1"}
        # Background tasks finish before TestClient returns
        assert len(target.records("customers")) == 2
        logs = asyncio.run(populated_store.list_sync_logs("int-1"))
        assert logs[0].triggered_by == "scheduler"
        assert "int-1" not in app_module.running_syncs

    def test_background_sync_without_body(self, client):
        assert client.post("/api/v1/integrations/int-1/sync").status_code == 202

    def test_unknown_integration(self, client):
        response = client.post("/api/v1/integrations/missing/sync")
        assert response.status_code == 404
        assert "missing" in response.json()["detail"]

    def test_duplicate_trigger_is_rejected(self, client):
        app_module.running_syncs.add("int-1")
        response = client.post("/api/v1/integrations/int-1/sync")
        assert response.status_code == 409
        assert client.post("/api/v1/integrations/int-1/sync/run").status_code == 409


class TestRunSync:

    def test_returns_statistics(self, client):
        response = client.post("/api/v1/integrations/int-1/sync/run")

        assert response.status_code == 200
        data = response.json()
        assert (data["records_processed"], data["records_succeeded"], data["records_failed"]) == (3, 2, 1)
        assert data["mappings"][0]["mapping_id"] == "map-1"
        assert "int-1" not in app_module.running_syncs

    def test_missing_integration_is_404(self, client):
        assert client.post("/api/v1/integrations/missing/sync/run").status_code == 404
        assert "missing" not in app_module.running_syncs

    def test_configuration_errors_are_400(self, client, populated_store):
        asyncio.run(populated_store.update_integration("int-1", {"sync_direction": SyncDirection.BIDIRECTIONAL}))

        response = client.post("/api/v1/integrations/int-1/sync/run")

        assert response.status_code == 400
        assert asyncio.run(populated_store.get_integration("int-1")).status == IntegrationStatus.ERROR

    def test_connector_errors_are_500(self, client, source):
        source._query = AsyncMock(side_effect=ConnectorError("source unavailable"))

        response = client.post("/api/v1/integrations/int-1/sync/run")

        assert response.status_code == 500
        assert response.json()["detail"] == "source unavailable"


class TestSyncLogs:

    def test_lists_runs(self, client):
        client.post("/api/v1/integrations/int-1/sync/run")
        client.post("/api/v1/integrations/missing/sync/run")

        logs = client.get("/api/v1/integrations/int-1/sync-logs").json()

        assert len(logs) == 1
        assert logs[0]["status"] == "completed"
        assert logs[0]["records_failed"] == 1


class TestWebhooks:

    def test_acknowledges_and_syncs(self, client, target):
        response = client.post("/api/v1/webhooks/int-1/map-1", json={"event": "contact.updated"})

        assert response.status_code == 202
        assert response.json() == {"status": "acknowledged", "sync": "initiated"}
        assert len(target.records("customers")) == 2

    def test_unknown_mapping(self, client):
        assert client.post("/api/v1/webhooks/int-1/map-9", json={}).status_code == 404

    def test_running_sync_is_not_restarted(self, client, target):
        app_module.running_syncs.add("int-1")

        response = client.post("/api/v1/webhooks/int-1/map-1", json={"event": "contact.updated"})

        assert response.json()["sync"] == "already_running"
        assert target.records("customers") == []
