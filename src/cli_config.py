"""Configuration overrides for runtime tunables (catalog URL, install root...).

Precedence, lowest to highest: built-in Constants, settings file (YAML or
JSON), environment variables, CLI flags. Effective values are written back
onto ``Constants`` so every module reads one place.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from constants import Constants, _load_yaml_config

logger = logging.getLogger(__name__)

# settings key -> (Constants attribute, environment variable)
_SETTINGS = {
    "catalog_url": ("CATALOG_URL", Constants.ENV_CATALOG_URL),
    "install_root": ("INSTALL_ROOT", Constants.ENV_INSTALL_ROOT),
    "request_timeout": ("REQUEST_TIMEOUT", Constants.ENV_REQUEST_TIMEOUT),
    "log_level": ("DEFAULT_LOG_LEVEL", None),
}


def _coerce(attr: str, value: Any, source: str) -> Optional[Any]:
    """Validate a raw setting value; None means "ignore it"."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if attr == "REQUEST_TIMEOUT":
        try:
            timeout = float(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid request_timeout %r from %s", value, source)
            return None
        if timeout <= 0:
            logger.warning("Ignoring non-positive request_timeout %r from %s", value, source)
            return None
        return timeout
    if attr == "DEFAULT_LOG_LEVEL":
        return str(value).upper()
    return str(value).strip()


def _apply(values: Dict[str, Any], source: str) -> None:
    for key, (attr, _) in _SETTINGS.items():
        coerced = _coerce(attr, values.get(key), source)
        if coerced is not None:
            setattr(Constants, attr, coerced)


def apply_config_overrides(args=None) -> None:
    """Apply settings file, environment and CLI overrides onto Constants.

    Args:
        args: Parsed manager arguments, or None when forwarding to the runtime.
    """
    config_path = getattr(args, "CONFIG", None)
    file_values = _load_yaml_config(config_path)
    if file_values:
        logger.debug("Loaded settings: %s", sorted(file_values))
    _apply(file_values, "settings file")

    env_values = {
        key: os.environ.get(env_name)
        for key, (_, env_name) in _SETTINGS.items()
        if env_name
    }
    _apply(env_values, "environment")

    cli_values = {
        "catalog_url": getattr(args, "CATALOG_URL", None),
        "install_root": getattr(args, "INSTALL_ROOT", None),
    }
    _apply(cli_values, "command line")
