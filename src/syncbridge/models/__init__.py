"""
Models for the SyncBridge system.
"""

from .integration import Integration, IntegrationStatus, SyncDirection, SyncFrequency
from .mapping import (
    FieldMapping, MappingGroup, MappingType, TransformationStep,
    CompositeConfig, ConditionalConfig, ConditionClause, CustomFunctionConfig,
    DefaultValueConfig, DirectConfig, LookupConfig, SplitConfig,
)
from .sync import SyncRunLog, SyncRunStatus, SyncRunResult, MappingGroupResult

__all__ = [
    # Integration
    "Integration",
    "IntegrationStatus",
    "SyncDirection",
    "SyncFrequency",

    # Mappings
    "MappingGroup",
    "FieldMapping",
    "MappingType",
    "TransformationStep",
    "DirectConfig",
    "CompositeConfig",
    "SplitConfig",
    "ConditionalConfig",
    "ConditionClause",
    "LookupConfig",
    "DefaultValueConfig",
    "CustomFunctionConfig",

    # Runs
    "SyncRunLog",
    "SyncRunStatus",
    "SyncRunResult",
    "MappingGroupResult",
]
