"""
Data directory resolution.

State and metrics live in ~/.ipabuilder/ unless IPABUILDER_HOME is set.
"""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

HOME_ENV_VAR = "IPABUILDER_HOME"
DEFAULT_DATA_DIR = Path.home() / ".ipabuilder"

STATE_FILENAME = "app_state.json"
METRICS_FILENAME = "metrics.jsonl"


def get_data_dir() -> Path:
    """Return the data directory, creating it if needed."""
    override = os.environ.get(HOME_ENV_VAR)
    data_dir = Path(override).expanduser() if override else DEFAULT_DATA_DIR
    if not data_dir.exists():
        try:
            data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create data directory {data_dir}: {e}")
    return data_dir


def state_file(data_dir: Path) -> Path:
    return data_dir / STATE_FILENAME


def metrics_file(data_dir: Path) -> Path:
    return data_dir / METRICS_FILENAME
