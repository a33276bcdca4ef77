"""
Metric event models.

One MetricEntry per line in metrics.jsonl. Event-specific fields are
optional and only set for the event types that use them.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class MetricEventType(str, Enum):
    """Types of recorded events."""

    APP_LAUNCHED = "app_launched"
    OUTPUT_DIRECTORY_SET = "output_directory_set"
    APP_ADDED = "app_added"  # app_name
    APP_REMOVED = "app_removed"  # app_name
    APP_RENAMED = "app_renamed"  # old_app_name, new_app_name
    APP_CONFIG_EDITED = "app_config_edited"  # app_id
    IPA_GENERATED = "ipa_generated"  # app_name, success, duration_ms, output_size_bytes


class MetricEntry(BaseModel):
    """A single recorded event."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    event_type: MetricEventType

    # Event payload
    app_name: Optional[str] = None
    old_app_name: Optional[str] = None
    new_app_name: Optional[str] = None
    app_id: Optional[str] = None
    success: Optional[bool] = None
    duration_ms: Optional[float] = None
    output_size_bytes: Optional[int] = None

    # Upload bookkeeping
    country_code: Optional[str] = None
    sent_to_server: bool = False

    @property
    def is_successful_generation(self) -> bool:
        return self.event_type == MetricEventType.IPA_GENERATED and bool(self.success)
