"""Archive extraction into a staging directory."""
from __future__ import annotations

import logging
import os
import shutil
import tarfile
import zipfile
from pathlib import Path
from typing import List

from errors import IntegrityError

logger = logging.getLogger(__name__)


def _check_member(destination: Path, name: str) -> None:
    target = os.path.realpath(os.path.join(destination, name))
    root = os.path.realpath(destination)
    if os.path.commonpath([root, target]) != root:
        raise IntegrityError(f"archive member escapes the install directory: {name}")


def _extract_zip(archive: Path, destination: Path) -> List[str]:
    with zipfile.ZipFile(archive, "r") as zip_ref:
        names = zip_ref.namelist()
        for name in names:
            _check_member(destination, name)
        zip_ref.extractall(destination)
        # zipfile drops permission bits; restore the ones recorded by unix zippers
        for info in zip_ref.infolist():
            mode = (info.external_attr >> 16) & 0o777
            if mode and not info.is_dir():
                os.chmod(destination / info.filename, mode)
    return [name for name in names if not name.endswith("/")]


def _extract_tar(archive: Path, destination: Path) -> List[str]:
    with tarfile.open(archive, "r:*") as tar:
        members = tar.getmembers()
        for member in members:
            _check_member(destination, member.name)
            if member.issym():
                _check_member(destination, os.path.join(os.path.dirname(member.name), member.linkname))
            elif member.islnk():
                # hard link targets are relative to the archive root
                _check_member(destination, member.linkname)
        if hasattr(tarfile, "data_filter"):
            tar.extractall(destination, filter="data")
        else:
            tar.extractall(destination)
    return [m.name for m in members if m.isfile()]


def extract_archive(archive: Path, destination: Path) -> List[str]:
    """Extract a zip or tar archive into ``destination``.

    A single top-level wrapper directory is flattened so the binary ends up
    directly in ``destination``.

    Returns:
        Relative paths of extracted files (before flattening).

    Raises:
        IntegrityError: If the archive is unreadable or unsafe.
    """
    destination.mkdir(parents=True, exist_ok=True)
    try:
        if zipfile.is_zipfile(archive):
            files = _extract_zip(archive, destination)
        elif tarfile.is_tarfile(archive):
            files = _extract_tar(archive, destination)
        else:
            raise IntegrityError(f"{archive.name} is not a zip or tar archive")
    except (zipfile.BadZipFile, tarfile.TarError, EOFError) as exc:
        raise IntegrityError(f"failed to extract {archive.name}: {exc}") from exc

    entries = list(destination.iterdir())
    if len(entries) == 1 and entries[0].is_dir():
        wrapper = entries[0].rename(destination / ".flatten")
        logger.debug("Flattening '%s' folder structure", entries[0].name)
        for item in wrapper.iterdir():
            shutil.move(str(item), str(destination / item.name))
        wrapper.rmdir()
    return files
