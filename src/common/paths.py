"""Per-user data and config directories.

Mirrors the usual platform conventions: XDG on Linux/BSD,
``~/Library/Application Support`` on macOS and ``%APPDATA%`` on Windows.
"""
from __future__ import annotations

import os
import sys
from pathlib import Path

from constants import Constants

_APP_QUALIFIER = "com.Ambient.AmbientCli"
_APP_VENDOR = "Ambient"
_APP_NAME = "AmbientCli"


def _home() -> Path:
    return Path(os.path.expanduser("~"))


def data_dir() -> Path:
    """Directory for persistent application data."""
    if sys.platform == "win32":
        base = os.environ.get("APPDATA") or str(_home() / "AppData" / "Roaming")
        return Path(base) / _APP_VENDOR / _APP_NAME / "data"
    if sys.platform == "darwin":
        return _home() / "Library" / "Application Support" / _APP_QUALIFIER
    base = os.environ.get("XDG_DATA_HOME") or str(_home() / ".local" / "share")
    return Path(base) / _APP_NAME.lower()


def config_dir() -> Path:
    """Directory for the user settings file."""
    if sys.platform == "win32":
        base = os.environ.get("APPDATA") or str(_home() / "AppData" / "Roaming")
        return Path(base) / _APP_VENDOR / _APP_NAME / "config"
    if sys.platform == "darwin":
        return _home() / "Library" / "Application Support" / _APP_QUALIFIER
    base = os.environ.get("XDG_CONFIG_HOME") or str(_home() / ".config")
    return Path(base) / _APP_NAME.lower()


def install_root() -> Path:
    """Root holding one directory per installed runtime version."""
    if Constants.INSTALL_ROOT:
        return Path(Constants.INSTALL_ROOT).expanduser()
    return data_dir() / "runtimes"
