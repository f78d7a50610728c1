"""Pick one concrete runtime version for a requirement.

Pure functions: the same requirement, installed set, catalog and default
always produce the same answer. Nothing here touches the network or disk.

Ordering follows SemVer 2.0 precedence (``1.0.0-rc.1 < 1.0.0``). For
``latest`` every stable release outranks every pre-release regardless of the
numeric core; pre-releases are only considered when no stable release exists
at all.
"""

import logging
from typing import Iterable, List, Optional, Sequence

from errors import NoMatchingVersion, NoVersionsAvailable
from .models import RemoteCatalogEntry, ResolutionMode, Version, VersionRequirement

logger = logging.getLogger(__name__)


def _highest(versions: Iterable[Version]) -> Optional[Version]:
    return max(versions, default=None)


def _pick_latest(installed: Sequence[Version], remote: Optional[Sequence[Version]]) -> Version:
    """Highest stable version across local and remote sets.

    An equal version on both sides is the installed one, so a download is
    only triggered when the catalog has something strictly newer.
    """
    pool: List[Version] = list(installed)
    if remote is not None:
        pool.extend(remote)
    if not pool:
        raise NoVersionsAvailable(
            "no runtime versions are installed or published",
            hint=None if remote is not None else "the catalog could not be reached",
        )
    stable = [v for v in pool if not v.prerelease]
    return _highest(stable) if stable else _highest(pool)


def _pick_range(
    requirement: VersionRequirement,
    installed: Sequence[Version],
    remote: Optional[Sequence[Version]],
    default: Optional[Version],
) -> Version:
    """Installed versions are preferred; remote is consulted only if none match."""
    if default is not None and default in installed and requirement.matches(default):
        return default

    local_match = _highest(v for v in installed if requirement.matches(v))
    if local_match is not None:
        return local_match

    if remote is not None:
        remote_match = _highest(v for v in remote if requirement.matches(v))
        if remote_match is not None:
            return remote_match

    known = len(installed) + (len(remote) if remote is not None else 0)
    raise NoMatchingVersion(
        f"no runtime version satisfies '{requirement.raw}' "
        f"({known} candidate{'s' if known != 1 else ''} checked)",
        hint=None if remote is not None else "the catalog could not be reached; only installed versions were checked",
    )


def resolve(
    requirement: VersionRequirement,
    installed: Sequence[Version],
    remote: Optional[Sequence[RemoteCatalogEntry]] = None,
    default: Optional[Version] = None,
) -> Version:
    """Resolve ``requirement`` to one concrete version.

    Args:
        requirement: Parsed requirement.
        installed: Versions present in the install root.
        remote: Catalog entries, or None when the catalog is unavailable.
        default: The current default version, preferred for ranges it satisfies.

    Raises:
        NoVersionsAvailable: ``latest`` with nothing known locally or remotely.
        NoMatchingVersion: A range that nothing satisfies.
    """
    if requirement.mode == ResolutionMode.EXACT:
        return requirement.version

    remote_versions = None if remote is None else [entry.version for entry in remote]

    if requirement.mode == ResolutionMode.LATEST:
        chosen = _pick_latest(installed, remote_versions)
    else:
        chosen = _pick_range(requirement, installed, remote_versions, default)

    logger.debug("Resolved %s -> %s", requirement.raw, chosen)
    return chosen


def needs_remote(
    requirement: VersionRequirement,
    installed: Sequence[Version],
    default: Optional[Version] = None,
) -> bool:
    """Whether resolution must consult the catalog.

    Exact pins never do. Ranges only do when no installed version matches.
    ``latest`` always does, since a newer release may have been published.
    """
    if requirement.mode == ResolutionMode.EXACT:
        return False
    if requirement.mode == ResolutionMode.LATEST:
        return True
    if default is not None and default in installed and requirement.matches(default):
        return False
    return not any(requirement.matches(v) for v in installed)
