"""
Sync engine: path access, conditions, transformations, mapping and orchestration.
"""

from .paths import UNSET, get_value, set_value
from .conditions import ConditionEvaluator
from .transforms import TransformationService
from .mapping import MappingEngine
from .sync import SyncEngine

__all__ = [
    "UNSET",
    "get_value",
    "set_value",
    "ConditionEvaluator",
    "TransformationService",
    "MappingEngine",
    "SyncEngine",
]
