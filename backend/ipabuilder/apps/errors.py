"""
App registry error types.

All errors inherit from AppRegistryError for easy catching.
"""


class AppRegistryError(Exception):
    """Base exception for app registry failures."""
    pass


class AppNotFoundError(AppRegistryError):
    """Raised when an app ID is not registered."""

    def __init__(self, app_id: str):
        self.app_id = app_id
        super().__init__(f"App not found: {app_id}")


class AppValidationError(AppRegistryError):
    """Raised when app settings are rejected."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class OutputDirectoryNotSetError(AppRegistryError):
    """Raised when generating before an output directory is configured."""

    def __init__(self):
        super().__init__("Output directory is not configured")


class StateLoadError(AppRegistryError):
    """Raised when the saved state file cannot be read or parsed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load app state from {path}: {reason}")
