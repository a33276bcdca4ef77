"""
Watch folders — unattended repackaging.

Watches one directory for Runner.app*.zip archives, waits for each to
finish copying, and runs the packaging pipeline on it. Status is reported
over a one-way channel the caller drains without blocking.

Public API:
    WatchConfig — Watch configuration model
    WatchMessage — Status message model
    FileStabilityChecker — File size polling for copy completion detection
    StatusChannel — Non-blocking one-way message channel
    WatchdogEventSource — Filesystem-change notifier
    WatchFolderRunner — Background loop: detect → stabilize → package
"""

from .errors import (
    WatchFolderError,
    WatchConfigError,
    FileStabilityError,
    WatcherStartError,
)
from .models import (
    WatchConfig,
    WatchMessage,
    WatchMessageKind,
    FileStabilityCheck,
    validate_watch_config,
)
from .filters import is_candidate_archive
from .stability import FileStabilityChecker
from .channel import StatusChannel
from .events import WatchdogEventSource
from .runner import WatchFolderRunner, WatchState

__all__ = [
    # Errors
    "WatchFolderError",
    "WatchConfigError",
    "FileStabilityError",
    "WatcherStartError",
    # Models
    "WatchConfig",
    "WatchMessage",
    "WatchMessageKind",
    "FileStabilityCheck",
    "validate_watch_config",
    # Core
    "is_candidate_archive",
    "FileStabilityChecker",
    "StatusChannel",
    "WatchdogEventSource",
    "WatchFolderRunner",
    "WatchState",
]
