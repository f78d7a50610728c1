"""Constants used in the project."""

import json
import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 3
    UNSUPPORTED_PLATFORM = 4
    INTEGRITY_ERROR = 5
    NOT_INSTALLED = 6
    SPAWN_ERROR = 7
    INTERRUPTED = 130


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    Values are overridden at startup by cli_config.apply_config_overrides.
    """

    TOOL_NAME = "ambient"
    RUNTIME_BINARY_NAME = "ambient"
    CATALOG_URL = (
        "https://storage.googleapis.com/storage/v1/b/ambient-artifacts/o"
        "?prefix=ambient-builds/&alt=json"
    )
    # None means "derive from common.paths.data_dir()"
    INSTALL_ROOT: Optional[str] = None
    PROJECT_MANIFEST_FILE = "ambient.toml"
    DEFAULT_POINTER_FILE = "default-version"
    INSTALL_MANIFEST_FILE = ".install.json"
    SETTINGS_FILE_NAMES = ("settings.yml", "settings.yaml", "settings.json")
    TEMP_DIR_PREFIX = ".tmp-"
    TRASH_DIR_PREFIX = ".trash-"
    STALE_TEMP_AGE_SEC = 6 * 60 * 60
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    DEFAULT_LOG_LEVEL = "WARNING"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    DOWNLOAD_CHUNK_SIZE = 64 * 1024
    USER_AGENT = "ambient-cli"

    ENV_CONFIG = "AMBIENT_CONFIG"
    ENV_LOG_LEVEL = "AMBIENT_LOG_LEVEL"
    ENV_CATALOG_URL = "AMBIENT_CATALOG_URL"
    ENV_INSTALL_ROOT = "AMBIENT_INSTALL_ROOT"
    ENV_REQUEST_TIMEOUT = "AMBIENT_REQUEST_TIMEOUT"
    ENV_RUNTIME_VERSION = "AMBIENT_RUNTIME_VERSION"


def _read_config_file(path: str) -> Dict[str, Any]:
    """Parse a YAML or JSON settings file; empty dict on any problem."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            if path.lower().endswith(".json"):
                data = json.load(fh)
            else:
                import yaml  # pylint: disable=import-outside-toplevel

                data = yaml.safe_load(fh)
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
        return {}
    except Exception as exc:  # pylint: disable=broad-exception-caught
        # yaml.YAMLError and friends
        logger.warning("Ignoring invalid settings file %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        return {}
    return data


def settings_path(explicit: Optional[str] = None) -> str:
    """Return the settings file in effect (it may not exist yet).

    Priority: explicit path, AMBIENT_CONFIG, first existing default name in the
    per-user config directory, else the first default name.
    """
    if explicit:
        return explicit
    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path and env_path.strip():
        return env_path.strip()

    from common.paths import config_dir  # pylint: disable=import-outside-toplevel

    base = config_dir()
    for name in Constants.SETTINGS_FILE_NAMES:
        candidate = os.path.join(base, name)
        if os.path.isfile(candidate):
            return candidate
    return os.path.join(base, Constants.SETTINGS_FILE_NAMES[0])


def _load_yaml_config(explicit: Optional[str] = None) -> Dict[str, Any]:
    """Load user settings from YAML (or JSON) at the default locations."""
    return _read_config_file(settings_path(explicit))
