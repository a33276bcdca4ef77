"""
Apps — saved packaging configurations.

Public API:
    AppConfig — One saved application configuration
    AppRegistry — In-memory registry with explicit JSON save/load
    AppService — Registry operations with persistence, metrics and generation
"""

from .errors import (
    AppRegistryError,
    AppNotFoundError,
    AppValidationError,
    OutputDirectoryNotSetError,
    StateLoadError,
)
from .models import AppConfig, AppState
from .registry import AppRegistry
from .service import AppService

__all__ = [
    # Errors
    "AppRegistryError",
    "AppNotFoundError",
    "AppValidationError",
    "OutputDirectoryNotSetError",
    "StateLoadError",
    # Models
    "AppConfig",
    "AppState",
    # Core
    "AppRegistry",
    "AppService",
]
