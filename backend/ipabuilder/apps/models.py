"""
App configuration models.

An AppConfig remembers how to package one application: which zipped
bundle to read and what to name the resulting .ipa.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class AppConfig(BaseModel):
    """A saved application packaging configuration."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    app_name: str
    input_zip_path: str
    output_ipa_name: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_generated_at: Optional[datetime] = None


class AppState(BaseModel):
    """Everything persisted between runs."""

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    output_directory: Optional[str] = None
    apps: List[AppConfig] = Field(default_factory=list)
