"""Project manifest (ambient.toml) reader.

Only ``[package].ambient_version`` is read, so the file stays compatible with
every runtime version's own manifest schema. Its value is a Cargo-style
requirement: ``ambient_version = "0.3.0"`` means ``^0.3.0``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # Fallback

from constants import Constants
from errors import ManifestError
from versioning.models import VersionRequirement
from versioning.parser import parse_manifest_requirement

logger = logging.getLogger(__name__)


def find_manifest(project_dir: Path) -> Optional[Path]:
    """``ambient.toml`` in ``project_dir``, if it exists."""
    path = Path(project_dir) / Constants.PROJECT_MANIFEST_FILE
    return path if path.is_file() else None


def read_runtime_requirement(project_dir: Path) -> Optional[VersionRequirement]:
    """The runtime requirement declared by the project, or None.

    Raises:
        ManifestError: The manifest exists but is not valid TOML, or its
            ``ambient_version`` is not a valid requirement.
    """
    path = find_manifest(project_dir)
    if path is None:
        return None
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ManifestError(f"invalid {path.name}: {exc}") from exc
    except OSError as exc:
        raise ManifestError(f"cannot read {path}: {exc}") from exc

    package = data.get("package")
    if not isinstance(package, dict):
        return None
    raw = package.get("ambient_version")
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ManifestError(f"{path.name}: package.ambient_version must be a string")
    try:
        requirement = parse_manifest_requirement(raw)
    except ValueError as exc:
        raise ManifestError(f"{path.name}: {exc}") from exc
    logger.info("Project %s requires runtime %s", path, requirement)
    return requirement
