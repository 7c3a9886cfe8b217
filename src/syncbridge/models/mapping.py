"""
Mapping configuration models: mapping groups and their field mappings.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .base import StoredModel

logger = logging.getLogger(__name__)


class MappingType(str, Enum):
    """Strategy used to derive a target value from a source record."""
    DIRECT = "direct"
    COMPOSITE = "composite"
    SPLIT = "split"
    CONDITIONAL = "conditional"
    LOOKUP = "lookup"
    DEFAULT_VALUE = "default_value"
    CUSTOM_FUNCTION = "custom_function"


class DirectConfig(BaseModel):
    """DIRECT mappings take no options."""
    model_config = ConfigDict(extra="ignore")


class CompositeConfig(BaseModel):
    source_fields: Optional[List[str]] = Field(None, alias="sourceFields", description="Paths joined into one value")
    separator: str = Field(" ", description="Separator placed between joined values")

    model_config = ConfigDict(populate_by_name=True)


class SplitConfig(BaseModel):
    separator: str = Field(" ", description="Separator to split the source value on")
    index: int = Field(0, ge=0, description="Which part to keep")


class ConditionClause(BaseModel):
    when: str = Field(..., description="Condition expression, e.g. status=Active")
    then: Any = Field(..., description="Value used when the condition matches")
    else_: Any = Field(None, alias="else", description="Fallback value (only read from the first clause)")

    model_config = ConfigDict(populate_by_name=True)


class ConditionalConfig(BaseModel):
    conditions: List[ConditionClause] = Field(default_factory=list)


class LookupConfig(BaseModel):
    lookup_entity: Optional[str] = Field(None, alias="lookupEntity")
    lookup_field: Optional[str] = Field(None, alias="lookupField")
    target_field: Optional[str] = Field(None, alias="targetField")

    model_config = ConfigDict(populate_by_name=True)


class DefaultValueConfig(BaseModel):
    default_value: Any = Field(None, alias="defaultValue")

    model_config = ConfigDict(populate_by_name=True)


class CustomFunctionConfig(BaseModel):
    function: Optional[str] = Field(None, description="Registered custom function name")
    params: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("params", mode="before")
    @classmethod
    def validate_params(cls, v):
        return v or {}


MappingConfig = Union[
    DirectConfig, CompositeConfig, SplitConfig, ConditionalConfig,
    LookupConfig, DefaultValueConfig, CustomFunctionConfig,
]

CONFIG_TYPES = {
    MappingType.DIRECT: DirectConfig,
    MappingType.COMPOSITE: CompositeConfig,
    MappingType.SPLIT: SplitConfig,
    MappingType.CONDITIONAL: ConditionalConfig,
    MappingType.LOOKUP: LookupConfig,
    MappingType.DEFAULT_VALUE: DefaultValueConfig,
    MappingType.CUSTOM_FUNCTION: CustomFunctionConfig,
}


def coerce_mapping_type(value: Any) -> MappingType:
    """Unknown or missing strategies fall back to DIRECT."""
    if isinstance(value, MappingType):
        return value
    try:
        return MappingType(value)
    except ValueError:
        logger.warning(f"Unsupported mapping type {value!r}, treating as direct")
        return MappingType.DIRECT


class TransformationStep(BaseModel):
    """One post-strategy transformation, e.g. {"type": "string.trim"}."""
    type: str = Field(..., description="Registered transformation name")
    config: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("config", mode="before")
    @classmethod
    def validate_config(cls, v):
        return v or {}


class FieldMapping(StoredModel):
    """Maps one source path to one target path."""
    id: str = Field(..., description="Unique identifier for this field mapping")
    mapping_id: str = Field(..., description="Owning mapping group")
    source_field_id: str = Field(..., description="Source field definition id")
    target_field_id: str = Field(..., description="Target field definition id")
    source_field_path: str = Field(..., min_length=1, description="Dotted/indexed source path")
    target_field_path: str = Field(..., min_length=1, description="Dotted/indexed target path")
    mapping_type: MappingType = Field(MappingType.DIRECT, description="Mapping strategy")
    mapping_config: MappingConfig = Field(default_factory=DirectConfig)
    transformations: List[TransformationStep] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @field_validator("transformations", mode="before")
    @classmethod
    def validate_transformations(cls, v):
        return v or []

    @model_validator(mode="before")
    @classmethod
    def select_config_variant(cls, data: Any) -> Any:
        """Parse mapping_config into the variant that belongs to mapping_type."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        mapping_type = coerce_mapping_type(data.get("mapping_type", MappingType.DIRECT))
        data["mapping_type"] = mapping_type

        raw_config = data.get("mapping_config")
        config_type = CONFIG_TYPES[mapping_type]
        if isinstance(raw_config, config_type):
            return data
        if isinstance(raw_config, BaseModel):
            raw_config = raw_config.model_dump(by_alias=True)
        data["mapping_config"] = config_type.model_validate(raw_config or {})
        return data


class MappingGroup(StoredModel):
    """Pairs one source entity with one target entity inside an integration."""
    id: str = Field(..., description="Unique identifier for this mapping group")
    integration_id: str = Field(..., description="Owning integration")
    name: str = Field(..., description="Human-readable name")
    description: Optional[str] = Field(None)

    source_entity_id: str = Field(..., description="Entity queried on the source connector")
    target_entity_id: str = Field(..., description="Entity written on the target connector")
    filter_condition: Optional[str] = Field(None, description="JSON-encoded equality filter for the source query")
    source_key_field: str = Field(..., description="Key field on the source entity")
    target_key_field: str = Field(..., min_length=1, description="Key field used to match target records")

    # Last-run statistics, written by the sync engine only
    last_sync_at: Optional[datetime] = Field(None)
    records_processed: Optional[int] = Field(None)
    records_succeeded: Optional[int] = Field(None)
    records_failed: Optional[int] = Field(None)
