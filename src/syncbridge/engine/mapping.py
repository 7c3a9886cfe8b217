"""
Mapping engine: converts a source record into a target-shaped record.
"""

import copy
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..models.mapping import (
    FieldMapping, MappingType, CompositeConfig, ConditionalConfig,
    CustomFunctionConfig, DefaultValueConfig, SplitConfig,
)
from .conditions import ConditionEvaluator, stringify
from .paths import UNSET, get_value, set_value
from .transforms import TransformationService

logger = logging.getLogger(__name__)


def _field_id(field: Any) -> Optional[str]:
    if isinstance(field, dict):
        return field.get("id")
    return getattr(field, "id", None)


class MappingEngine:
    """
    Applies field mappings to records.

    Each mapping is processed independently: a mapping that cannot be
    resolved or raises is logged and skipped, the rest still apply.
    """

    def __init__(
        self,
        transformation_service: Optional[TransformationService] = None,
        condition_evaluator: Optional[ConditionEvaluator] = None,
    ):
        self.transformation_service = transformation_service or TransformationService()
        self.condition_evaluator = condition_evaluator or ConditionEvaluator()

    def transform_data(
        self,
        source_data: Dict[str, Any],
        field_mappings: Sequence[FieldMapping],
        source_fields: Sequence[Any],
        target_fields: Sequence[Any],
    ) -> Dict[str, Any]:
        """
        Transform a source record into target format.

        Args:
            source_data: Record returned by the source connector
            field_mappings: Mappings to apply, in order
            source_fields: Field definitions of the source entity
            target_fields: Field definitions of the target entity

        Returns:
            A new record; source_data is left untouched
        """
        logger.debug(f"Starting data transformation with {len(field_mappings)} mappings")

        source_ids = {_field_id(f) for f in source_fields}
        target_ids = {_field_id(f) for f in target_fields}
        result: Dict[str, Any] = {}

        for mapping in field_mappings:
            try:
                if mapping.source_field_id not in source_ids or mapping.target_field_id not in target_ids:
                    logger.warning(
                        f"Missing field definition for mapping {mapping.id} "
                        f"(source={mapping.source_field_id}, target={mapping.target_field_id})"
                    )
                    continue

                value = self.resolve_value(source_data, mapping)
                value = self.transformation_service.apply_pipeline(value, mapping.transformations)

                if value is UNSET:
                    logger.debug(f"Mapping {mapping.id} produced no value, leaving {mapping.target_field_path} unset")
                    continue

                set_value(result, mapping.target_field_path, copy.deepcopy(value))

            except Exception as e:
                logger.error(f"Error processing mapping {mapping.id}: {e}")

        logger.debug("Data transformation completed")
        return result

    def transform_records(
        self,
        records: List[Dict[str, Any]],
        field_mappings: Sequence[FieldMapping],
        source_fields: Sequence[Any],
        target_fields: Sequence[Any],
    ) -> List[Dict[str, Any]]:
        """Transform a list of records with the same mappings."""
        return [
            self.transform_data(record, field_mappings, source_fields, target_fields)
            for record in records
        ]

    def resolve_value(self, source_data: Dict[str, Any], mapping: FieldMapping) -> Any:
        """Compute the pre-transformation value for one mapping."""
        source_value = get_value(source_data, mapping.source_field_path)
        config = mapping.mapping_config

        if mapping.mapping_type == MappingType.DIRECT:
            return source_value

        if mapping.mapping_type == MappingType.COMPOSITE:
            if isinstance(config, CompositeConfig) and config.source_fields:
                parts = [get_value(source_data, path) for path in config.source_fields]
                return config.separator.join(self._join_part(p) for p in parts)
            return source_value

        if mapping.mapping_type == MappingType.SPLIT:
            if isinstance(config, SplitConfig) and isinstance(source_value, str):
                parts = source_value.split(config.separator)
                return parts[config.index] if config.index < len(parts) else UNSET
            return source_value

        if mapping.mapping_type == MappingType.CONDITIONAL:
            if isinstance(config, ConditionalConfig) and config.conditions:
                for clause in config.conditions:
                    if self.condition_evaluator.evaluate(clause.when, source_data):
                        return clause.then
                # Only the first clause's else is consulted
                fallback = config.conditions[0].else_
                return fallback if fallback is not None else UNSET
            return source_value

        if mapping.mapping_type == MappingType.LOOKUP:
            logger.info(f"Lookup mapping {mapping.id} is not implemented, passing value through")
            return source_value

        if mapping.mapping_type == MappingType.DEFAULT_VALUE:
            if source_value is not UNSET:
                return source_value
            if isinstance(config, DefaultValueConfig) and config.default_value is not None:
                return config.default_value
            return UNSET

        if mapping.mapping_type == MappingType.CUSTOM_FUNCTION:
            if isinstance(config, CustomFunctionConfig) and config.function:
                return self.transformation_service.execute_function(config.function, source_value, config.params)
            return source_value

        logger.warning(f"Unsupported mapping type: {mapping.mapping_type}")
        return source_value

    @staticmethod
    def _join_part(value: Any) -> str:
        if value is UNSET or value is None:
            return ""
        return stringify(value)
