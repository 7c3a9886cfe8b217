"""
Models for sync run logs and results.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .base import StoredModel


class SyncRunStatus(str, Enum):
    """Status of a sync run."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class MappingGroupResult(BaseModel):
    """Outcome of one mapping group within a run."""
    mapping_id: str
    name: str
    records_processed: int = 0
    records_succeeded: int = 0
    records_failed: int = 0
    errors: List[str] = Field(default_factory=list)


class SyncRunLog(StoredModel):
    """
    Audit record of one sync run. Created as running and finalized exactly
    once, as completed or failed.
    """
    id: str
    integration_id: str
    integration_type: Optional[str] = Field(None, description="Label such as 'hubspot → memory'")
    start_time: datetime = Field(default_factory=datetime.utcnow)
    end_time: Optional[datetime] = None
    status: SyncRunStatus = SyncRunStatus.RUNNING
    records_processed: int = 0
    records_succeeded: int = 0
    records_failed: int = 0
    error: Optional[str] = None
    triggered_by: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_finalized(self) -> bool:
        return self.status != SyncRunStatus.RUNNING

    def mark_completed(self, results: List[MappingGroupResult]) -> None:
        self._finalize(SyncRunStatus.COMPLETED)
        self.records_processed = sum(r.records_processed for r in results)
        self.records_succeeded = sum(r.records_succeeded for r in results)
        self.records_failed = sum(r.records_failed for r in results)
        self.details = {"mappings": [r.model_dump() for r in results]}

    def mark_failed(self, error: str) -> None:
        self._finalize(SyncRunStatus.FAILED)
        self.error = error

    def _finalize(self, status: SyncRunStatus) -> None:
        if self.is_finalized:
            raise ValueError(f"Sync run {self.id} is already {self.status.value}")
        self.status = status
        self.end_time = datetime.utcnow()


class SyncRunResult(BaseModel):
    """Returned to the caller of a successful run."""
    success: bool = True
    integration_id: str
    sync_log_id: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    mapping_results: List[MappingGroupResult] = Field(default_factory=list)

    @property
    def records_processed(self) -> int:
        return sum(r.records_processed for r in self.mapping_results)

    @property
    def records_succeeded(self) -> int:
        return sum(r.records_succeeded for r in self.mapping_results)

    @property
    def records_failed(self) -> int:
        return sum(r.records_failed for r in self.mapping_results)
