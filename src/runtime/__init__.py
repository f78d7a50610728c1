"""Runtime installation engine: store, installer, launcher and orchestration."""

from .installer import Installer
from .launcher import Launcher
from .service import RuntimeService
from .store import InstallationStore

__all__ = [
    "InstallationStore",
    "Installer",
    "Launcher",
    "RuntimeService",
]
