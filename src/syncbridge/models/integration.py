"""
Integration configuration models.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field

from .base import StoredModel


class IntegrationStatus(str, Enum):
    """Lifecycle status of an integration."""
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    ERROR = "error"


class SyncDirection(str, Enum):
    SOURCE_TO_TARGET = "source_to_target"
    TARGET_TO_SOURCE = "target_to_source"
    BIDIRECTIONAL = "bidirectional"


class SyncFrequency(str, Enum):
    REALTIME = "realtime"
    MINUTES_5 = "minutes_5"
    MINUTES_15 = "minutes_15"
    HOURLY = "hourly"
    DAILY = "daily"
    MANUAL = "manual"


class Integration(StoredModel):
    """
    Top-level sync configuration between two connectors.
    Status and last_sync_at are written by the sync engine only.
    """
    # Identity
    id: str = Field(..., description="Unique identifier for this integration")
    name: str = Field(..., description="Human-readable name")
    description: Optional[str] = Field(None, description="Optional description")

    # Connectors
    source_connector_id: str = Field(..., description="Registry id of the source connector")
    target_connector_id: str = Field(..., description="Registry id of the target connector")
    source_auth: Optional[Dict[str, Any]] = Field(None, description="Credentials passed to the source connector")
    target_auth: Optional[Dict[str, Any]] = Field(None, description="Credentials passed to the target connector")

    # Behaviour
    status: IntegrationStatus = Field(IntegrationStatus.DRAFT, description="Current status")
    sync_direction: SyncDirection = Field(SyncDirection.SOURCE_TO_TARGET)
    sync_frequency: SyncFrequency = Field(SyncFrequency.MINUTES_15)

    # Timestamps
    last_sync_at: Optional[datetime] = Field(None, description="When sync last completed")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def label(self) -> str:
        return f"{self.source_connector_id} → {self.target_connector_id}"
