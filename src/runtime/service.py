"""Orchestrates resolution, installation and launch for the CLI."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from common.http_client import ProgressCallback
from common.paths import install_root
from common.platform import Target
from errors import NetworkError, ResolutionError
from manifest import read_runtime_requirement
from registry.catalog import CatalogClient
from versioning.models import (
    InstalledVersion,
    RemoteCatalogEntry,
    ResolutionMode,
    Version,
    VersionRequirement,
)
from versioning.resolver import needs_remote, resolve

from .installer import Installer
from .launcher import Launcher
from .store import InstallationStore

logger = logging.getLogger(__name__)

LATEST = VersionRequirement(raw="latest", mode=ResolutionMode.LATEST)


class RuntimeService:
    """High-level operations behind the ``ambient`` commands."""

    def __init__(
        self,
        store: InstallationStore,
        catalog: CatalogClient,
        installer: Optional[Installer] = None,
        launcher: Optional[Launcher] = None,
    ):
        self.store = store
        self.catalog = catalog
        self.installer = installer or Installer(store, catalog)
        self.launcher = launcher or Launcher(store)

    @classmethod
    def from_config(cls, target: Optional[Target] = None) -> "RuntimeService":
        """Build a service from the effective Constants (after overrides)."""
        store = InstallationStore(install_root(), target or Target.current())
        return cls(store, CatalogClient())

    def list_remote(self, include_nightly: bool = True) -> List[RemoteCatalogEntry]:
        entries = self.catalog.fetch_catalog()
        if include_nightly:
            return list(entries)
        return [e for e in entries if not e.is_nightly]

    def resolve(self, requirement: VersionRequirement) -> Version:
        """Resolve against installed versions, consulting the catalog only if needed.

        A catalog failure is only fatal when installed versions cannot answer.
        """
        installed = self.store.installed_versions()
        default = self.store.get_default()
        if not needs_remote(requirement, installed, default):
            return resolve(requirement, installed, None, default)

        try:
            remote = self.catalog.fetch_catalog()
        except NetworkError as exc:
            try:
                version = resolve(requirement, installed, None, default)
            except ResolutionError:
                raise exc from None
            logger.warning("Catalog unavailable (%s); using installed runtime %s", exc.message, version)
            return version
        return resolve(requirement, installed, remote, default)

    def current_requirement(self, project_dir: Path) -> Optional[VersionRequirement]:
        return read_runtime_requirement(project_dir)

    def resolve_current(self, project_dir: Path) -> Version:
        """The version used in ``project_dir``.

        Priority: the project's declared requirement, then the default
        version, then the latest published release.
        """
        requirement = self.current_requirement(project_dir)
        if requirement is not None:
            return self.resolve(requirement)
        default = self.store.get_default()
        if default is not None:
            return default
        logger.info("No default runtime version set, using latest version")
        return self.resolve(LATEST)

    def install(
        self,
        requirement: VersionRequirement,
        force: bool = False,
        progress: Optional[ProgressCallback] = None,
    ) -> InstalledVersion:
        version = self.resolve(requirement)
        return self.installer.install(version, force=force, progress=progress)

    def set_default(self, version: Version) -> None:
        self.store.set_default(version)

    def uninstall(self, version: Version) -> bool:
        return self.store.uninstall(version)

    def run(
        self,
        args: Sequence[str],
        project_dir: Path,
        env: Optional[Mapping[str, str]] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> int:
        """Resolve the current version, install it if missing and launch it."""
        version = self.resolve_current(project_dir)
        if not self.store.is_installed(version):
            self.installer.install(version, progress=progress)
        return self.launcher.launch(version, args, env)
