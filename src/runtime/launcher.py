"""Execute an installed runtime binary."""
from __future__ import annotations

import logging
import os
import subprocess
from typing import Mapping, Optional, Sequence

from constants import Constants, ExitCodes
from errors import NotInstalledError, SpawnError
from versioning.models import Version

from .store import InstallationStore

logger = logging.getLogger(__name__)


class Launcher:
    """Runs a specific installed version; never installs anything itself."""

    def __init__(self, store: InstallationStore):
        self.store = store

    def build_env(self, version: Version, env: Optional[Mapping[str, str]] = None) -> dict:
        """Current environment plus caller overrides plus the runtime marker."""
        merged = os.environ.copy()
        if env:
            merged.update(env)
        merged[Constants.ENV_RUNTIME_VERSION] = str(version)
        return merged

    def launch(
        self,
        version: Version,
        args: Sequence[str],
        env: Optional[Mapping[str, str]] = None,
    ) -> int:
        """Run ``version`` with ``args`` and return the child's exit code.

        Raises:
            NotInstalledError: ``version`` is not installed.
            SpawnError: The binary could not be started.
        """
        installed = self.store.get_installed(version)
        if installed is None:
            raise NotInstalledError(version)

        cmd = [str(installed.binary_path), *args]
        logger.debug("Running: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, env=self.build_env(version, env))  # noqa: S603
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
            return ExitCodes.INTERRUPTED.value
        except OSError as exc:
            raise SpawnError(
                f"cannot execute {installed.binary_path}: {exc.strerror or exc}",
                hint=f"reinstall with `ambient runtime install {version} --force`",
            ) from exc
        return result.returncode
