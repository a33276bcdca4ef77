"""
Watch folder data models.

All models use Pydantic with strict validation and no silent coercion.
"""

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from ..packaging.errors import InvalidOutputNameError
from ..packaging.models import check_output_name
from .errors import WatchConfigError


class WatchConfig(BaseModel):
    """
    Watch configuration.

    Every stable Runner.app*.zip dropped into watch_dir is repackaged
    into output_dir/output_name.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    watch_dir: str = Field(..., description="Directory monitored for new archives")
    output_dir: str = Field(..., description="Directory that receives the .ipa")
    app_name: str = Field(..., description="Display name used in status output")
    output_name: str = Field(..., description="File name of the generated .ipa")


def validate_watch_config(config: WatchConfig) -> None:
    """
    Check a watch configuration before anything is spawned.

    Raises:
        WatchConfigError: If a directory is invalid, the display name is
            blank, or the output name is malformed
    """
    if not Path(config.watch_dir).is_dir():
        raise WatchConfigError(f"Watch directory is invalid: {config.watch_dir}")
    if not Path(config.output_dir).is_dir():
        raise WatchConfigError(f"Output directory is invalid: {config.output_dir}")
    if not config.app_name.strip():
        raise WatchConfigError("App name cannot be empty")
    try:
        check_output_name(config.output_name)
    except InvalidOutputNameError as e:
        raise WatchConfigError(str(e)) from e


class FileStabilityCheck(BaseModel):
    """
    Result of a file stability check.

    A file is stable when its size is unchanged since the previous check
    and it can be opened for reading.
    """

    model_config = ConfigDict(extra="forbid")

    path: str = Field(..., description="Absolute path to checked file")
    is_stable: bool = Field(..., description="Whether file is stable")
    size_bytes: Optional[int] = Field(
        None, description="Current file size in bytes (None if file inaccessible)"
    )
    check_count: int = Field(
        default=0, description="Number of checks since the size last changed"
    )
    reason: Optional[str] = Field(
        None, description="Human-readable explanation if unstable or inaccessible"
    )


class WatchMessageKind(str, Enum):
    """Kinds of status messages emitted by the watch loop."""

    STARTED = "started"
    CANDIDATE_DETECTED = "candidate_detected"
    SKIPPED = "skipped"
    GENERATED = "generated"
    GENERATION_FAILED = "generation_failed"
    WATCHER_ERROR = "watcher_error"
    STOPPED = "stopped"


class WatchMessage(BaseModel):
    """
    A status message sent from the watch loop to its caller.

    Generation messages carry the archive path and timing so a status sink
    can record event counters.
    """

    model_config = ConfigDict(extra="forbid")

    kind: WatchMessageKind
    message: str
    path: Optional[str] = None
    archive_path: Optional[str] = None
    app_name: Optional[str] = None
    duration_ms: Optional[float] = None
    size_bytes: Optional[int] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def __str__(self) -> str:
        return self.message
