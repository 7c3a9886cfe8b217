"""
Main sync engine that orchestrates data synchronization for an integration.
"""

import json
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..connectors.base import AuthToken, BaseConnector, QueryOptions
from ..connectors.registry import ConnectorRegistry
from ..core.config import Settings
from ..exceptions import (
    ConfigurationError, ConnectorNotFoundError, ExecutionError,
    IntegrationNotFoundError, UnsupportedSyncDirectionError,
)
from ..models.integration import Integration, IntegrationStatus, SyncDirection
from ..models.mapping import FieldMapping, MappingGroup
from ..models.sync import MappingGroupResult, SyncRunLog, SyncRunResult
from ..services.store import SyncStore
from .mapping import MappingEngine
from .paths import UNSET, get_value

logger = logging.getLogger(__name__)

# Per-record error messages kept in the run log details
MAX_RECORDED_ERRORS = 20


class SyncEngine:
    """
    Runs one integration end to end.

    Mapping groups and records are processed sequentially. Failures on a
    single record are counted and the run continues; anything else aborts
    the run, marks the integration as errored and is re-raised.
    """

    def __init__(
        self,
        store: SyncStore,
        connector_registry: ConnectorRegistry,
        mapping_engine: Optional[MappingEngine] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize the sync engine."""
        self.store = store
        self.connector_registry = connector_registry
        self.mapping_engine = mapping_engine or MappingEngine()
        self.settings = settings or Settings()

    async def sync_integration(self, integration_id: str, triggered_by: str = "manual") -> SyncRunResult:
        """
        Execute a sync run for an integration.

        Args:
            integration_id: Integration to synchronize
            triggered_by: What triggered this run (api, scheduler, webhook, manual)

        Returns:
            SyncRunResult with per-mapping statistics

        Raises:
            IntegrationNotFoundError, ConnectorNotFoundError, ConfigurationError,
            ConnectorError: on fatal errors, after the run log is marked failed
        """
        sync_log = SyncRunLog(
            id=str(uuid.uuid4()),
            integration_id=integration_id,
            triggered_by=triggered_by,
        )
        await self.store.save_sync_log(sync_log)

        integration: Optional[Integration] = None
        try:
            logger.info(f"Starting sync {sync_log.id} for integration {integration_id}")

            integration = await self.store.get_integration(integration_id)
            if integration is None:
                raise IntegrationNotFoundError(integration_id)

            sync_log.integration_type = integration.label
            await self.store.save_sync_log(sync_log)

            self._check_direction(integration)
            source_connector = self._get_connector(integration.source_connector_id)
            target_connector = self._get_connector(integration.target_connector_id)
            await self._authenticate(integration, "source_auth", source_connector)
            await self._authenticate(integration, "target_auth", target_connector)

            mappings = await self.store.list_mapping_groups(integration_id)
            logger.info(f"Integration {integration_id} has {len(mappings)} mapping groups")

            results: List[MappingGroupResult] = []
            for mapping in mappings:
                result = await self._sync_mapping(integration, mapping, source_connector, target_connector)
                results.append(result)

            await self.store.update_integration(integration_id, {
                "status": IntegrationStatus.ACTIVE,
                "last_sync_at": datetime.utcnow(),
            })

        except Exception as e:
            logger.error(f"Sync {sync_log.id} for integration {integration_id} failed: {e}")
            await self._record_failure(sync_log, integration, e)
            raise

        sync_log.mark_completed(results)
        await self.store.save_sync_log(sync_log)

        logger.info(
            f"Sync {sync_log.id} completed: {sync_log.records_processed} processed, "
            f"{sync_log.records_succeeded} succeeded, {sync_log.records_failed} failed"
        )
        return SyncRunResult(
            integration_id=integration_id,
            sync_log_id=sync_log.id,
            mapping_results=results,
        )

    async def _record_failure(self, sync_log: SyncRunLog, integration: Optional[Integration], error: Exception) -> None:
        if integration is not None:
            try:
                await self.store.update_integration(integration.id, {"status": IntegrationStatus.ERROR})
            except Exception as update_error:
                logger.error(f"Could not mark integration {integration.id} as errored: {update_error}")

        sync_log.mark_failed(str(error))
        await self.store.save_sync_log(sync_log)

    def _check_direction(self, integration: Integration) -> None:
        if integration.sync_direction != SyncDirection.SOURCE_TO_TARGET:
            raise UnsupportedSyncDirectionError(
                f"Sync direction '{integration.sync_direction.value}' is not supported; "
                f"only '{SyncDirection.SOURCE_TO_TARGET.value}' can be run"
            )

    def _get_connector(self, connector_id: str) -> BaseConnector:
        connector = self.connector_registry.create_connector(connector_id)
        if connector is None:
            raise ConnectorNotFoundError(connector_id)
        return connector

    async def _authenticate(self, integration: Integration, auth_field: str, connector: BaseConnector) -> None:
        """
        Authenticate a run-scoped connector with the integration's stored credentials.

        Credentials holding a refresh token are refreshed rather than exchanged
        again. Whenever the connector issues a refresh token, the new tokens
        replace the stored credentials (dropping any one-time ``code``).
        """
        credentials = getattr(integration, auth_field)
        if not credentials:
            return

        logger.info(f"Authenticating connector {connector.id} for integration {integration.id}")
        if credentials.get("refresh_token"):
            token = await connector.refresh_token(AuthToken(
                access_token=credentials.get("access_token") or "",
                refresh_token=credentials["refresh_token"],
            ))
        else:
            token = await connector.authenticate(credentials)

        if not token.refresh_token:
            return

        stored = {key: value for key, value in credentials.items() if key != "code"}
        stored.update({
            "access_token": token.access_token,
            "refresh_token": token.refresh_token,
            "expires_at": token.expires_at.isoformat() if token.expires_at else None,
        })
        await self.store.update_integration(integration.id, {auth_field: stored})
        setattr(integration, auth_field, stored)
        logger.info(f"Stored refreshed {auth_field} tokens for integration {integration.id}")

    async def _sync_mapping(
        self,
        integration: Integration,
        mapping: MappingGroup,
        source_connector: BaseConnector,
        target_connector: BaseConnector,
    ) -> MappingGroupResult:
        """Sync all source records of one mapping group into the target."""
        logger.info(f"Processing mapping {mapping.id} ({mapping.name})")

        field_mappings = await self.store.list_field_mappings(mapping.id)
        filters = self._parse_filter(mapping)

        records = await self._fetch_source_records(source_connector, mapping.source_entity_id, filters)
        logger.info(f"Retrieved {len(records)} records from {source_connector.id}/{mapping.source_entity_id}")

        source_fields = await source_connector.get_entity_fields(mapping.source_entity_id)
        target_fields = await target_connector.get_entity_fields(mapping.target_entity_id)

        result = MappingGroupResult(mapping_id=mapping.id, name=mapping.name, records_processed=len(records))

        for record in records:
            try:
                await self._sync_record(
                    record, mapping, field_mappings, source_fields, target_fields, target_connector
                )
                result.records_succeeded += 1
            except Exception as e:
                logger.error(f"Error processing record {record.get('id')} of mapping {mapping.id}: {e}")
                result.records_failed += 1
                if len(result.errors) < MAX_RECORDED_ERRORS:
                    result.errors.append(f"{record.get('id')}: {e}")

        logger.info(
            f"Processed mapping {mapping.id}: {result.records_succeeded} successes, "
            f"{result.records_failed} errors"
        )

        await self.store.update_mapping_group(mapping.id, {
            "last_sync_at": datetime.utcnow(),
            "records_processed": result.records_processed,
            "records_succeeded": result.records_succeeded,
            "records_failed": result.records_failed,
        })
        return result

    async def _sync_record(
        self,
        record: Dict[str, Any],
        mapping: MappingGroup,
        field_mappings: List[FieldMapping],
        source_fields: List[Any],
        target_fields: List[Any],
        target_connector: BaseConnector,
    ) -> None:
        """Transform one record and upsert it into the target, keyed on target_key_field."""
        transformed = self.mapping_engine.transform_data(record, field_mappings, source_fields, target_fields)

        key_value = get_value(transformed, mapping.target_key_field)
        if key_value is UNSET or key_value is None:
            raise ExecutionError(f"Transformed record has no value for key field '{mapping.target_key_field}'")

        existing = await target_connector.query(mapping.target_entity_id, {mapping.target_key_field: key_value})

        if existing.records:
            existing_id = existing.records[0].get("id")
            result = await target_connector.update(mapping.target_entity_id, existing_id, transformed)
        else:
            result = await target_connector.create(mapping.target_entity_id, transformed)

        if not result.success:
            raise ExecutionError(result.error or "Target connector reported failure")

    async def _fetch_source_records(
        self, connector: BaseConnector, entity_id: str, filters: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        records: List[Dict[str, Any]] = []
        offset = 0
        while True:
            page = await connector.query(
                entity_id, filters, QueryOptions(limit=self.settings.sync_page_size, offset=offset)
            )
            records.extend(page.records)
            if not page.has_more or not page.records:
                return records
            offset += len(page.records)

    @staticmethod
    def _parse_filter(mapping: MappingGroup) -> Dict[str, Any]:
        if not mapping.filter_condition:
            return {}
        try:
            filters = json.loads(mapping.filter_condition)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Mapping {mapping.id} has an invalid filter condition: {e}") from e
        if not isinstance(filters, dict):
            raise ConfigurationError(f"Mapping {mapping.id} filter condition must be a JSON object")
        return filters
