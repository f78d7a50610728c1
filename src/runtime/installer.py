"""Download, verify, extract and activate a runtime version."""
from __future__ import annotations

import logging
import os
import shutil
import stat
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

from common.http_client import ProgressCallback, download_to_file
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from common.platform import Target
from errors import FilesystemError, IntegrityError, NoMatchingVersion, UnsupportedPlatformError
from registry.catalog import CatalogClient
from versioning.models import InstalledVersion, Version

from .archive import extract_archive
from .integrity import validate_download
from .store import InstallationStore, write_install_manifest

logger = logging.getLogger(__name__)


def _archive_name(url: str) -> str:
    name = os.path.basename(urlsplit(url).path) or "runtime.zip"
    if name.endswith((".zip", ".tar.gz", ".tgz")):
        return name
    return "runtime.zip"


class Installer:
    """Installs runtime versions into an InstallationStore.

    Nothing is ever written to a version's final path except by a single
    rename of a fully extracted staging directory.
    """

    def __init__(self, store: InstallationStore, catalog: CatalogClient):
        self.store = store
        self.catalog = catalog

    def install(
        self,
        version: Version,
        target: Optional[Target] = None,
        force: bool = False,
        progress: Optional[ProgressCallback] = None,
    ) -> InstalledVersion:
        """Install ``version`` for ``target`` (default: the store's target).

        Returns immediately, without network access, if already installed
        and ``force`` is False.

        Raises:
            NoMatchingVersion: The catalog does not publish ``version``.
            UnsupportedPlatformError: No build for this target.
            NetworkError: Catalog or download failure.
            IntegrityError: Size/checksum mismatch or unusable archive.
            FilesystemError: The install root cannot be written.
        """
        target = target or self.store.target
        if not force:
            existing = self.store.get_installed(version)
            if existing is not None:
                logger.debug("Runtime %s already installed at %s", version, existing.path)
                return existing

        entry = self.catalog.find(version)
        if entry is None:
            raise NoMatchingVersion(
                f"runtime version {version} is not published",
                hint="run `ambient runtime list-all` to see available versions",
            )
        build = entry.build_for(target)
        if build is None:
            available = ", ".join(sorted(str(t) for t in entry.builds)) or "none"
            raise UnsupportedPlatformError(
                f"runtime {version} has no build for {target} (available: {available})"
            )

        logger.info("Installing runtime %s for %s", version, target)
        work_dir = self.store.new_temp_dir(str(version))
        try:
            archive = work_dir / _archive_name(build.url)
            staging = work_dir / "staging"
            with Timer() as timer:
                download_to_file(build.url, archive, context="download", progress=progress)
            if is_debug_enabled(logger):
                logger.debug(
                    "Archive downloaded",
                    extra=extra_context(
                        event="download",
                        component="installer",
                        outcome="success",
                        target=safe_url(build.url),
                        duration_ms=timer.duration_ms(),
                    )
                )
            validate_download(archive, build.checksum, build.size)

            extract_archive(archive, staging)
            archive.unlink()
            self._prepare_binary(staging, target)
            write_install_manifest(staging, {
                "version": str(version),
                "target": str(target),
                "installed_at": datetime.now(timezone.utc).isoformat(),
                "source_url": safe_url(build.url),
                "checksum": f"{build.checksum.algorithm}:{build.checksum.hexdigest}" if build.checksum else None,
            })
            installed = self.store.activate(staging, version, replace=force)
        except OSError as exc:
            raise FilesystemError(f"failed to install {version}: {exc}") from exc
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)

        logger.info("Successfully installed runtime %s", version)
        if self.store.get_default() is None:
            self.store.set_default(version)
            logger.info("Runtime %s is now the default", version)
        return installed

    def _prepare_binary(self, staging: Path, target: Target) -> None:
        binary = staging / target.binary_name
        if not binary.is_file():
            raise IntegrityError(
                f"archive does not contain the {target.binary_name} binary"
            )
        mode = binary.stat().st_mode
        binary.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
