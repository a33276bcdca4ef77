"""
App registry.

In-memory storage for app configurations and the output directory,
with explicit JSON save/load.
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from ..packaging.errors import InvalidOutputNameError
from ..packaging.models import check_output_name
from .errors import AppNotFoundError, AppValidationError, StateLoadError
from .models import AppConfig, AppState

logger = logging.getLogger(__name__)


def _clean_fields(app_name: str, input_zip_path: str, output_ipa_name: str):
    """
    Validate and normalize user-supplied app fields.

    Raises:
        AppValidationError: If any field is unusable
    """
    name = app_name.strip()
    if not name:
        raise AppValidationError("Application name cannot be empty.")
    zip_path = input_zip_path.strip()
    if not zip_path:
        raise AppValidationError("Input ZIP path must be selected.")
    try:
        ipa_name = check_output_name(output_ipa_name)
    except InvalidOutputNameError as e:
        raise AppValidationError(
            f"Output IPA name must not be empty and end with .ipa ({e.reason})"
        ) from e
    return name, zip_path, ipa_name


class AppRegistry:
    """
    Registry of app configurations.

    Changes stay in memory until save() is called.
    """

    def __init__(self, state_path: Optional[Path] = None):
        """
        Initialize registry.

        Args:
            state_path: Optional JSON file for explicit save/load
        """
        self.state_path = Path(state_path) if state_path is not None else None
        self._state = AppState()
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """
        Load state from state_path. A missing file leaves the registry empty.

        Raises:
            StateLoadError: If the file exists but cannot be parsed
        """
        if self.state_path is None or not self.state_path.exists():
            logger.info(f"No app state file found at {self.state_path}. Using default.")
            return

        try:
            state = AppState.model_validate_json(self.state_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            raise StateLoadError(str(self.state_path), str(e)) from e
        except ValidationError as e:
            raise StateLoadError(str(self.state_path), str(e)) from e

        with self._lock:
            self._state = state
        logger.info(f"Loaded {len(state.apps)} app(s) from {self.state_path}")

    def save(self) -> None:
        """Write state to state_path (atomic replace)."""
        if self.state_path is None:
            raise ValueError("No state_path configured for AppRegistry")

        with self._lock:
            data = self._state.model_dump(mode="json")

        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.state_path.with_name(self.state_path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.state_path)
        logger.debug(f"App state saved to {self.state_path}")

    # ------------------------------------------------------------------
    # Output directory
    # ------------------------------------------------------------------

    @property
    def output_directory(self) -> Optional[str]:
        with self._lock:
            return self._state.output_directory

    def set_output_directory(self, path: str) -> None:
        """
        Raises:
            AppValidationError: If path is not an existing directory
        """
        if not Path(path).is_dir():
            raise AppValidationError(
                "Invalid directory selected. Please choose a valid directory."
            )
        with self._lock:
            self._state.output_directory = str(path)

    # ------------------------------------------------------------------
    # Apps
    # ------------------------------------------------------------------

    def add_app(self, app_name: str, input_zip_path: str, output_ipa_name: str) -> AppConfig:
        """
        Register a new app.

        Raises:
            AppValidationError: If a field is unusable
        """
        name, zip_path, ipa_name = _clean_fields(app_name, input_zip_path, output_ipa_name)
        app = AppConfig(app_name=name, input_zip_path=zip_path, output_ipa_name=ipa_name)
        with self._lock:
            self._state.apps.append(app)
        return app

    def get_app(self, app_id: str) -> AppConfig:
        """
        Raises:
            AppNotFoundError: If app_id is not registered
        """
        with self._lock:
            for app in self._state.apps:
                if app.id == app_id:
                    return app
        raise AppNotFoundError(app_id)

    def update_app(
        self,
        app_id: str,
        app_name: str,
        input_zip_path: str,
        output_ipa_name: str,
    ) -> AppConfig:
        """
        Replace an app's editable fields.

        Raises:
            AppNotFoundError: If app_id is not registered
            AppValidationError: If a field is unusable
        """
        name, zip_path, ipa_name = _clean_fields(app_name, input_zip_path, output_ipa_name)
        return self._replace(
            app_id,
            app_name=name,
            input_zip_path=zip_path,
            output_ipa_name=ipa_name,
        )

    def rename_app(self, app_id: str, new_name: str) -> AppConfig:
        name = new_name.strip()
        if not name:
            raise AppValidationError("Application name cannot be empty.")
        return self._replace(app_id, app_name=name)

    def mark_generated(self, app_id: str, when) -> AppConfig:
        return self._replace(app_id, last_generated_at=when)

    def remove_app(self, app_id: str) -> AppConfig:
        """
        Raises:
            AppNotFoundError: If app_id is not registered
        """
        with self._lock:
            for i, app in enumerate(self._state.apps):
                if app.id == app_id:
                    return self._state.apps.pop(i)
        raise AppNotFoundError(app_id)

    def list_apps(self) -> List[AppConfig]:
        with self._lock:
            return list(self._state.apps)

    def search(self, query: str) -> List[AppConfig]:
        """Case-insensitive match on app name or input path. Empty query matches all."""
        needle = query.strip().lower()
        apps = self.list_apps()
        if not needle:
            return apps
        return [
            app for app in apps
            if needle in app.app_name.lower() or needle in app.input_zip_path.lower()
        ]

    def _replace(self, app_id: str, **updates) -> AppConfig:
        with self._lock:
            for i, app in enumerate(self._state.apps):
                if app.id == app_id:
                    updated = app.model_copy(update=updates)
                    self._state.apps[i] = updated
                    return updated
        raise AppNotFoundError(app_id)
