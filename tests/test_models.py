"""Tests for configuration and run log models."""

import pytest
from pydantic import ValidationError

from syncbridge.core.config import Settings
from syncbridge.models import (
    CompositeConfig, ConditionalConfig, DirectConfig, FieldMapping, Integration,
    MappingGroup, MappingGroupResult, MappingType, SyncRunLog, SyncRunStatus,
)


def field_mapping_data(**overrides):
    data = {
        "id": "fm-1",
        "mapping_id": "map-1",
        "source_field_id": "name",
        "target_field_id": "full_name",
        "source_field_path": "name",
        "target_field_path": "full_name",
    }
    data.update(overrides)
    return data


class TestFieldMapping:

    def test_defaults_to_direct(self):
        fm = FieldMapping.model_validate(field_mapping_data())
        assert fm.mapping_type == MappingType.DIRECT
        assert isinstance(fm.mapping_config, DirectConfig)
        assert fm.transformations == []

    def test_config_variant_follows_type(self):
        fm = FieldMapping.model_validate(field_mapping_data(
            mapping_type="composite",
            mapping_config={"sourceFields": ["a", "b"], "separator": "-"},
        ))
        assert isinstance(fm.mapping_config, CompositeConfig)
        assert fm.mapping_config.source_fields == ["a", "b"]

    def test_conditional_else_alias(self):
        fm = FieldMapping.model_validate(field_mapping_data(
            mapping_type="conditional",
            mapping_config={"conditions": [{"when": "a=1", "then": "x", "else": "y"}]},
        ))
        assert isinstance(fm.mapping_config, ConditionalConfig)
        assert fm.mapping_config.conditions[0].else_ == "y"

    def test_unknown_type_is_coerced_to_direct(self):
        fm = FieldMapping.model_validate(field_mapping_data(mapping_type="formula"))
        assert fm.mapping_type == MappingType.DIRECT

    @pytest.mark.parametrize("path_field", ["source_field_path", "target_field_path"])
    def test_empty_paths_are_rejected(self, path_field):
        with pytest.raises(ValidationError):
            FieldMapping.model_validate(field_mapping_data(**{path_field: ""}))

    def test_invalid_config_for_type_is_rejected(self):
        with pytest.raises(ValidationError):
            FieldMapping.model_validate(field_mapping_data(
                mapping_type="conditional",
                mapping_config={"conditions": [{"then": "x"}]},
            ))

    def test_is_immutable(self):
        fm = FieldMapping.model_validate(field_mapping_data())
        with pytest.raises(ValidationError):
            fm.source_field_path = "other"

    def test_document_round_trip_keeps_aliases(self):
        fm = FieldMapping.model_validate(field_mapping_data(
            mapping_type="conditional",
            mapping_config={"conditions": [{"when": "a=1", "then": "x", "else": "y"}]},
            transformations=[{"type": "string.trim"}],
        ))
        doc = fm.to_document()
        assert doc["mapping_config"]["conditions"][0]["else"] == "y"
        assert FieldMapping.from_document("fm-1", doc) == fm


class TestMappingGroup:

    def test_target_key_field_is_required(self):
        with pytest.raises(ValidationError):
            MappingGroup(
                id="map-1", integration_id="int-1", name="Contacts",
                source_entity_id="contacts", target_entity_id="customers",
                source_key_field="email", target_key_field="",
            )


class TestIntegration:

    def test_defaults(self):
        integration = Integration(id="int-1", name="n", source_connector_id="crm", target_connector_id="erp")
        assert integration.status.value == "draft"
        assert integration.sync_direction.value == "source_to_target"
        assert integration.sync_frequency.value == "minutes_15"
        assert integration.label == "crm → erp"


class TestSyncRunLog:

    def test_completion_aggregates_results(self):
        log = SyncRunLog(id="run-1", integration_id="int-1")
        log.mark_completed([
            MappingGroupResult(mapping_id="a", name="A", records_processed=3, records_succeeded=2, records_failed=1),
            MappingGroupResult(mapping_id="b", name="B", records_processed=1, records_succeeded=1),
        ])
        assert log.status == SyncRunStatus.COMPLETED
        assert (log.records_processed, log.records_succeeded, log.records_failed) == (4, 3, 1)
        assert log.end_time is not None
        assert [m["mapping_id"] for m in log.details["mappings"]] == ["a", "b"]

    def test_finalizes_only_once(self):
        log = SyncRunLog(id="run-1", integration_id="int-1")
        log.mark_failed("boom")
        assert log.status == SyncRunStatus.FAILED
        assert log.error == "boom"
        with pytest.raises(ValueError):
            log.mark_completed([])


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("SYNC_PAGE_SIZE", "25")
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example")
    monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)

    settings = Settings.from_env()

    assert settings.sync_page_size == 25
    assert settings.allowed_origins == ["https://a.example", "https://b.example"]
    assert settings.google_cloud_project is None
