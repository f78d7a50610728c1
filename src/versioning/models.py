"""Data models for versioning, the remote catalog and local installs."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Union

import semantic_version

from common.platform import Target

Version = semantic_version.Version
RangeSpec = Union[semantic_version.NpmSpec, semantic_version.SimpleSpec]


class ResolutionMode(Enum):
    """Resolution strategy derived from the requirement text."""
    EXACT = "exact"
    RANGE = "range"
    LATEST = "latest"


@dataclass(frozen=True)
class VersionRequirement:
    """Normalized representation of a version requirement.

    Exactly one of ``version`` (EXACT) or ``spec`` (RANGE) is set; LATEST
    carries neither.
    """
    raw: str
    mode: ResolutionMode
    version: Optional[Version] = None
    spec: Optional[RangeSpec] = field(default=None, compare=False)
    include_prerelease: bool = False

    def matches(self, version: Version) -> bool:
        """True if ``version`` satisfies this requirement."""
        if self.mode == ResolutionMode.LATEST:
            return not version.prerelease or self.include_prerelease
        if self.mode == ResolutionMode.EXACT:
            return version == self.version
        if version.prerelease and not self.include_prerelease:
            return False
        return self.spec.match(version)

    def __str__(self) -> str:
        return self.raw


@dataclass(frozen=True)
class Checksum:
    """A published digest of a download."""
    algorithm: str  # "sha256" | "md5"
    hexdigest: str


@dataclass(frozen=True)
class DownloadDescriptor:
    """Where to fetch one build and how to verify it."""
    url: str
    size: Optional[int] = None
    checksum: Optional[Checksum] = None


@dataclass
class RemoteCatalogEntry:
    """One published runtime version and its per-target builds."""
    version: Version
    builds: Dict[Target, DownloadDescriptor] = field(default_factory=dict)

    @property
    def is_prerelease(self) -> bool:
        return bool(self.version.prerelease)

    @property
    def is_nightly(self) -> bool:
        return "nightly" in str(self.version)

    def build_for(self, target: Target) -> Optional[DownloadDescriptor]:
        return self.builds.get(target)


@dataclass(frozen=True)
class InstalledVersion:
    """A runtime version present in the install root."""
    version: Version
    path: Path
    binary_path: Path
    installed_at: datetime
