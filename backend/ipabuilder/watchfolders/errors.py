"""
Watch folder error hierarchy.

Only configuration errors are fatal, and only at start. Everything raised
inside the watch loop is reported as a status message and the loop keeps
watching.
"""


class WatchFolderError(Exception):
    """Base exception for watch folder failures."""

    pass


class WatchConfigError(WatchFolderError):
    """Watch configuration is invalid; nothing was started."""

    pass


class FileStabilityError(WatchFolderError):
    """File did not become stable (still being written/copied) in time."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"File not ready: {path} ({reason})")


class WatcherStartError(WatchFolderError):
    """The filesystem-change notifier could not be started."""

    pass
