"""
Main FastAPI application for SyncBridge.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Set

from fastapi import FastAPI, HTTPException, Depends, BackgroundTasks, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..connectors import ConnectorRegistry, create_default_registry
from ..core.config import Settings, setup_logging
from ..engine.sync import SyncEngine
from ..exceptions import (
    ConfigurationError, IntegrationNotFoundError, SyncAlreadyRunningError, SyncBridgeException,
)
from ..models.sync import SyncRunLog, SyncRunResult
from ..services.firestore import FirestoreStore
from ..services.secrets import SecretManagerService
from ..services.store import SyncStore
from ..version import __version__

logger = logging.getLogger(__name__)

# Global services (initialized in lifespan)
settings = Settings.from_env()
store: Optional[SyncStore] = None
connector_registry: Optional[ConnectorRegistry] = None
sync_engine: Optional[SyncEngine] = None

# Integrations with a sync in flight in this process
running_syncs: Set[str] = set()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global store, connector_registry, sync_engine

    setup_logging(settings.log_level)

    credentials: Dict[str, Dict[str, str]] = {}
    try:
        secret_service = SecretManagerService(project_id=settings.google_cloud_project)
        credentials["hubspot"] = secret_service.get_connector_credentials("hubspot")
        logger.info("Connector credentials loaded from Secret Manager")
    except Exception as e:
        logger.error(f"Failed to initialize Secret Manager service: {e}")

    connector_registry = create_default_registry(settings, credentials)

    try:
        store = FirestoreStore(project_id=settings.google_cloud_project)
        sync_engine = SyncEngine(store, connector_registry, settings=settings)
        logger.info("Sync engine initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize Firestore store: {e}")
        store = None
        sync_engine = None

    logger.info("Application startup complete")
    yield
    logger.info("Application shutdown")


app = FastAPI(
    title="SyncBridge API",
    description="API for triggering and monitoring data synchronization between business systems",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(IntegrationNotFoundError)
async def integration_not_found_handler(request: Request, exc: IntegrationNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(SyncAlreadyRunningError)
async def sync_running_handler(request: Request, exc: SyncAlreadyRunningError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


# Dependency injection
def get_store() -> SyncStore:
    if store is None:
        raise HTTPException(status_code=500, detail="Store not initialized")
    return store


def get_connector_registry() -> ConnectorRegistry:
    if connector_registry is None:
        raise HTTPException(status_code=500, detail="Connector registry not initialized")
    return connector_registry


def get_sync_engine() -> SyncEngine:
    if sync_engine is None:
        raise HTTPException(status_code=500, detail="Sync engine not initialized")
    return sync_engine


class SyncRequest(BaseModel):
    triggered_by: str = "api"


def claim_integration(integration_id: str) -> None:
    """Mark an integration as syncing; raises if a run is already in flight."""
    if integration_id in running_syncs:
        raise SyncAlreadyRunningError(f"A sync for integration {integration_id} is already running")
    running_syncs.add(integration_id)


async def run_sync_in_background(engine: SyncEngine, integration_id: str, triggered_by: str) -> None:
    """Run a claimed sync; failures are already recorded in the run log."""
    try:
        await engine.sync_integration(integration_id, triggered_by=triggered_by)
    except Exception as e:
        logger.error(f"Background sync for integration {integration_id} failed: {e}")
    finally:
        running_syncs.discard(integration_id)


def summarize_result(result: SyncRunResult) -> Dict[str, Any]:
    return {
        "success": result.success,
        "integration_id": result.integration_id,
        "sync_log_id": result.sync_log_id,
        "timestamp": result.timestamp.isoformat(),
        "records_processed": result.records_processed,
        "records_succeeded": result.records_succeeded,
        "records_failed": result.records_failed,
        "mappings": [r.model_dump() for r in result.mapping_results],
    }


@app.get("/health")
async def health_check():
    """Check the health of the application and its services."""
    return {
        "status": "healthy",
        "version": __version__,
        "services": {
            "store": store is not None,
            "connector_registry": connector_registry is not None,
            "sync_engine": sync_engine is not None,
        }
    }


@app.get("/api/v1/connectors")
async def list_connectors(registry: ConnectorRegistry = Depends(get_connector_registry)):
    """List available connectors."""
    details = {}
    for connector_id in registry.get_available_connector_types():
        connector = registry.get_connector(connector_id)
        details[connector_id] = connector.describe()
    return {
        "connectors": list(details.keys()),
        "details": details,
    }


@app.post("/api/v1/integrations/{integration_id}/sync", status_code=202)
async def trigger_sync(
    integration_id: str,
    background_tasks: BackgroundTasks,
    request: Optional[SyncRequest] = None,
    sync_store: SyncStore = Depends(get_store),
    engine: SyncEngine = Depends(get_sync_engine),
):
    """Start a sync for an integration in the background."""
    if await sync_store.get_integration(integration_id) is None:
        raise IntegrationNotFoundError(integration_id)

    triggered_by = request.triggered_by if request else "api"
    claim_integration(integration_id)
    background_tasks.add_task(run_sync_in_background, engine, integration_id, triggered_by)

    logger.info(f"Sync initiated for integration {integration_id} (triggered by {triggered_by})")
    return {"status": "initiated", "integration_id": integration_id}


@app.post("/api/v1/integrations/{integration_id}/sync/run")
async def run_sync(
    integration_id: str,
    request: Optional[SyncRequest] = None,
    engine: SyncEngine = Depends(get_sync_engine),
):
    """Run a sync synchronously and return its statistics."""
    claim_integration(integration_id)
    try:
        result = await engine.sync_integration(
            integration_id, triggered_by=request.triggered_by if request else "api"
        )
        return summarize_result(result)
    except ConfigurationError:
        raise
    except SyncBridgeException as e:
        logger.error(f"Sync for integration {integration_id} failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    finally:
        running_syncs.discard(integration_id)


@app.get("/api/v1/integrations/{integration_id}/sync-logs", response_model=List[SyncRunLog])
async def list_sync_logs(
    integration_id: str,
    limit: int = 50,
    sync_store: SyncStore = Depends(get_store),
):
    """List recent sync runs for an integration, newest first."""
    try:
        return await sync_store.list_sync_logs(integration_id, limit=limit)
    except Exception as e:
        logger.error(f"Failed to list sync logs for integration {integration_id}: {e}")
        raise HTTPException(status_code=500, detail="An unexpected error occurred.")


@app.post("/api/v1/webhooks/{integration_id}/{mapping_id}", status_code=202)
async def receive_webhook(
    integration_id: str,
    mapping_id: str,
    payload: Dict[str, Any],
    background_tasks: BackgroundTasks,
    sync_store: SyncStore = Depends(get_store),
    engine: SyncEngine = Depends(get_sync_engine),
):
    """
    Acknowledge a change notification and sync the integration in the background.

    Payloads are not verified or applied directly; the notification only
    triggers a regular sync run.
    """
    mapping = await sync_store.get_mapping_group(mapping_id)
    if mapping is None or mapping.integration_id != integration_id:
        raise HTTPException(status_code=404, detail=f"Mapping {mapping_id} not found for integration {integration_id}")

    logger.info(f"Webhook received for mapping {mapping_id} with {len(payload)} top-level keys")

    if integration_id in running_syncs:
        return {"status": "acknowledged", "sync": "already_running"}

    claim_integration(integration_id)
    background_tasks.add_task(run_sync_in_background, engine, integration_id, "webhook")
    return {"status": "acknowledged", "sync": "initiated"}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
