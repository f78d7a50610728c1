"""On-disk installation store.

A stateless view over the install root::

    <root>/
        default-version          one version string
        0.3.1/                   one directory per installed version
            ambient              the runtime binary (ambient.exe on Windows)
            .install.json        advisory metadata, never authoritative
        .tmp-0.3.2-4242-k3j1x/   in-flight install of another process

A version is installed if and only if its directory exists and holds the
binary. Every method re-reads the filesystem, so manual deletion and other
processes are always observed.
"""
from __future__ import annotations

import json
import logging
import os
import re
import shutil
import sys
import tempfile
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from constants import Constants
from common.platform import Target
from errors import FilesystemError, NotInstalledError
from versioning.models import InstalledVersion, Version
from versioning.parser import try_parse_version

logger = logging.getLogger(__name__)

_OWNER_PID = re.compile(r"-(\d+)-[^-]*$")


def _pid_alive(pid: int) -> bool:
    if pid == os.getpid():
        return True
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except OSError:
        # EPERM: exists but owned by someone else
        return True
    return True


class InstallationStore:
    """Install root layout, default pointer and install/uninstall primitives."""

    def __init__(self, root: Path, target: Optional[Target] = None):
        self.root = Path(root)
        self.target = target or Target.current()

    @property
    def pointer_path(self) -> Path:
        return self.root / Constants.DEFAULT_POINTER_FILE

    def install_path_for(self, version: Version) -> Path:
        """Deterministic directory for ``version`` (may not exist yet)."""
        return self.root / str(version)

    def binary_path_for(self, version: Version) -> Path:
        return self.install_path_for(version) / self.target.binary_name

    def ensure_root(self) -> Path:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(f"cannot create install root {self.root}: {exc}") from exc
        return self.root

    # Listing

    def _installed_at(self, directory: Path) -> datetime:
        meta = read_install_manifest(directory)
        stamp = meta.get("installed_at") if meta else None
        if isinstance(stamp, str):
            try:
                return datetime.fromisoformat(stamp)
            except ValueError:
                pass
        try:
            return datetime.fromtimestamp(directory.stat().st_mtime, tz=timezone.utc)
        except OSError:
            return datetime.now(timezone.utc)

    def _validate(self, version: Version, directory: Path) -> Optional[InstalledVersion]:
        binary = directory / self.target.binary_name
        if not directory.is_dir() or not binary.is_file():
            return None
        return InstalledVersion(
            version=version,
            path=directory,
            binary_path=binary,
            installed_at=self._installed_at(directory),
        )

    def get_installed(self, version: Version) -> Optional[InstalledVersion]:
        """The installed record for ``version``, or None."""
        return self._validate(version, self.install_path_for(version))

    def is_installed(self, version: Version) -> bool:
        return self.get_installed(version) is not None

    def list_installed(self) -> List[InstalledVersion]:
        """Scan the install root; invalid directories are reported and skipped."""
        try:
            entries = list(os.scandir(self.root))
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise FilesystemError(f"cannot read install root {self.root}: {exc}") from exc

        installed = []
        for entry in entries:
            if entry.name.startswith(".") or not entry.is_dir():
                continue
            version = try_parse_version(entry.name)
            if version is None or str(version) != entry.name:
                logger.warning("Ignoring %s: directory name is not a runtime version", entry.path)
                continue
            record = self._validate(version, Path(entry.path))
            if record is None:
                logger.warning(
                    "Ignoring %s: %s binary is missing", entry.path, self.target.binary_name
                )
                continue
            installed.append(record)
        installed.sort(key=lambda r: r.version)
        return installed

    def installed_versions(self) -> List[Version]:
        return [record.version for record in self.list_installed()]

    # Default pointer

    def _read_pointer(self) -> Optional[Version]:
        try:
            text = self.pointer_path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise FilesystemError(f"cannot read {self.pointer_path}: {exc}") from exc
        version = try_parse_version(text)
        if version is None and text:
            logger.warning("Ignoring default pointer with invalid content: %r", text)
        return version

    def get_default(self) -> Optional[Version]:
        """The default version, if set and still installed."""
        version = self._read_pointer()
        if version is None:
            return None
        if not self.is_installed(version):
            logger.warning("Default runtime %s is no longer installed", version)
            return None
        return version

    def set_default(self, version: Version) -> None:
        """Atomically point the default at ``version``.

        Raises:
            NotInstalledError: ``version`` is not installed; the pointer is untouched.
            FilesystemError: The pointer could not be written.
        """
        if not self.is_installed(version):
            raise NotInstalledError(version)
        self._write_pointer(str(version) + "\n")
        logger.info("Default runtime set to %s", version)

    def clear_default(self) -> None:
        try:
            self.pointer_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise FilesystemError(f"cannot remove {self.pointer_path}: {exc}") from exc

    def _write_pointer(self, content: str) -> None:
        self.ensure_root()
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.root,
                prefix=f"{Constants.TEMP_DIR_PREFIX}default-{os.getpid()}-",
                delete=False,
            ) as fh:
                tmp_name = fh.name
                fh.write(content)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.pointer_path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise FilesystemError(f"cannot write {self.pointer_path}: {exc}") from exc

    # Install / uninstall primitives

    def new_temp_dir(self, label: str) -> Path:
        """Create a process-unique scratch directory inside the install root.

        It lives on the same filesystem as the final install path so the
        activation rename is atomic.
        """
        self.ensure_root()
        try:
            return Path(tempfile.mkdtemp(
                prefix=f"{Constants.TEMP_DIR_PREFIX}{label}-{os.getpid()}-",
                dir=self.root,
            ))
        except OSError as exc:
            raise FilesystemError(f"cannot create a temporary directory in {self.root}: {exc}") from exc

    def _move_to_trash(self, path: Path, label: str) -> Optional[Path]:
        try:
            trash = Path(tempfile.mkdtemp(
                prefix=f"{Constants.TRASH_DIR_PREFIX}{label}-{os.getpid()}-",
                dir=self.root,
            ))
        except OSError as exc:
            raise FilesystemError(f"cannot remove {path}: {exc}") from exc
        target = trash / "contents"
        try:
            os.rename(path, target)
        except FileNotFoundError:
            shutil.rmtree(trash, ignore_errors=True)
            return None
        except OSError as exc:
            shutil.rmtree(trash, ignore_errors=True)
            raise FilesystemError(f"cannot remove {path}: {exc}") from exc
        return trash

    def _delete_trash(self, trash: Path) -> None:
        try:
            shutil.rmtree(trash)
        except OSError as exc:
            logger.warning("Could not fully delete %s (%s); it will be swept later", trash, exc)

    def activate(self, staging: Path, version: Version, replace: bool = False) -> InstalledVersion:
        """Atomically rename a fully prepared ``staging`` dir into place.

        If another process activated the same version first, its install is
        returned instead of failing. A directory at the final path that is
        not a valid install (e.g. its binary was deleted) is replaced.
        """
        final = self.install_path_for(version)
        trash = None
        if final.exists() and (replace or self.get_installed(version) is None):
            if not replace:
                logger.warning("Replacing incomplete runtime directory %s", final)
            trash = self._move_to_trash(final, str(version))
        try:
            os.rename(staging, final)
        except OSError as exc:
            if trash is not None:
                # put the previous install back before giving up
                try:
                    os.rename(trash / "contents", final)
                except OSError:
                    pass
            existing = self.get_installed(version)
            if existing is not None:
                logger.info("Runtime %s was installed concurrently; using existing install", version)
                return existing
            raise FilesystemError(
                f"cannot activate {version} at {final}: {exc}",
                hint=f"remove {final} manually and retry",
            ) from exc
        finally:
            if trash is not None:
                self._delete_trash(trash)
        record = self.get_installed(version)
        if record is None:
            raise FilesystemError(f"{final} vanished right after activation")
        return record

    def uninstall(self, version: Version) -> bool:
        """Remove ``version``; a no-op if it is already absent.

        Returns:
            True if a directory was removed.
        """
        path = self.install_path_for(version)
        removed = False
        if path.exists():
            trash = self._move_to_trash(path, str(version))
            if trash is not None:
                self._delete_trash(trash)
                removed = True
                logger.info("Uninstalled runtime %s", version)
        if self._read_pointer() == version:
            self.clear_default()
            logger.warning("Runtime %s was the default; no default runtime is set now", version)
        return removed

    def uninstall_all(self) -> List[Version]:
        """Remove every installed version and the default pointer."""
        removed = [v for v in self.installed_versions() if self.uninstall(v)]
        self.clear_default()
        return removed

    def sweep_temp(self, max_age: Optional[float] = None) -> int:
        """Delete temp/trash leftovers of crashed runs.

        On POSIX an entry named after its owning pid is stale exactly when
        that process is gone. Entries whose owner cannot be checked (Windows,
        unrecognized names) are stale once older than ``max_age`` seconds.
        Returns the number removed.
        """
        max_age = Constants.STALE_TEMP_AGE_SEC if max_age is None else max_age
        try:
            entries = list(os.scandir(self.root))
        except FileNotFoundError:
            return 0
        except OSError as exc:
            raise FilesystemError(f"cannot read install root {self.root}: {exc}") from exc

        now = time.time()
        swept = 0
        for entry in entries:
            if not entry.name.startswith((Constants.TEMP_DIR_PREFIX, Constants.TRASH_DIR_PREFIX)):
                continue
            try:
                age = now - entry.stat(follow_symlinks=False).st_mtime
            except OSError:
                continue
            owner = _OWNER_PID.search(entry.name)
            if sys.platform != "win32" and owner is not None:
                # a live owner may still be downloading, however long it takes
                stale = not _pid_alive(int(owner.group(1)))
            else:
                stale = age >= max_age
            if not stale:
                continue
            try:
                if entry.is_dir(follow_symlinks=False):
                    shutil.rmtree(entry.path)
                else:
                    os.unlink(entry.path)
            except OSError as exc:
                logger.warning("Could not remove stale %s: %s", entry.path, exc)
                continue
            logger.debug("Removed stale temporary entry %s", entry.path)
            swept += 1
        return swept


def read_install_manifest(directory: Path) -> Optional[Dict[str, Any]]:
    """Advisory metadata for an install directory; None if absent or unreadable."""
    try:
        with open(directory / Constants.INSTALL_MANIFEST_FILE, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def write_install_manifest(directory: Path, metadata: Dict[str, Any]) -> None:
    with open(directory / Constants.INSTALL_MANIFEST_FILE, "w", encoding="utf-8") as fh:
        json.dump(metadata, fh, indent=2, sort_keys=True)
