"""Remote catalog client: fetch published runtime versions and their builds."""
from __future__ import annotations

import base64
import binascii
import logging
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional, Tuple

from constants import Constants
from common.http_client import get_json
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from common.platform import Arch, Os, Target
from errors import NetworkError
from versioning.models import Checksum, DownloadDescriptor, RemoteCatalogEntry, Version
from versioning.parser import try_parse_version

logger = logging.getLogger(__name__)

_ARCHIVE_SUFFIXES = (".zip", ".tar.gz", ".tgz")
# (version, target, build); target and build are None for a bare version row
_Row = Tuple[Version, Optional[Target], Optional[DownloadDescriptor]]


def _parse_size(value: Any) -> Optional[int]:
    try:
        size = int(value)
    except (TypeError, ValueError):
        return None
    return size if size >= 0 else None


def _parse_checksum(build: Dict[str, Any]) -> Optional[Checksum]:
    """Read a checksum from ``sha256``/``md5`` keys or an ``algo:hex`` string."""
    for algorithm in ("sha256", "md5"):
        value = build.get(algorithm)
        if isinstance(value, str) and value.strip():
            return Checksum(algorithm, value.strip().lower())
    value = build.get("checksum")
    if isinstance(value, str) and ":" in value:
        algorithm, _, digest = value.partition(":")
        algorithm = algorithm.strip().lower()
        if algorithm in ("sha256", "md5") and digest.strip():
            return Checksum(algorithm, digest.strip().lower())
    return None


def _md5_from_base64(value: Any) -> Optional[Checksum]:
    """GCS publishes ``md5Hash`` base64-encoded."""
    if not isinstance(value, str) or not value:
        return None
    try:
        return Checksum("md5", base64.b64decode(value, validate=True).hex())
    except (binascii.Error, ValueError):
        return None


def _target_from(os_name: Any, arch_name: Any) -> Optional[Target]:
    os_ = Os.parse(str(os_name)) if os_name else None
    if os_ is None:
        return None
    arch = Arch.parse(str(arch_name)) if arch_name else Arch.X86_64
    if arch is None:
        return None
    return Target(os_, arch)


def _parse_version_records(records: Iterable[Any]) -> List[_Row]:
    """Flatten ``[{version, builds: [...]}, ...]`` into rows."""
    rows = []
    for record in records:
        if not isinstance(record, dict):
            continue
        version = try_parse_version(str(record.get("version", "")))
        if version is None:
            logger.debug("Skipping catalog record with invalid version: %r", record.get("version"))
            continue
        # the version is published even if none of its builds is usable here
        rows.append((version, None, None))
        for build in record.get("builds") or []:
            if not isinstance(build, dict) or not build.get("url"):
                continue
            target = _target_from(build.get("os") or build.get("platform"), build.get("arch"))
            if target is None:
                logger.debug("Skipping %s build for unknown target %s/%s",
                             version, build.get("os") or build.get("platform"), build.get("arch"))
                continue
            rows.append((version, target, DownloadDescriptor(
                url=str(build["url"]),
                size=_parse_size(build.get("size")),
                checksum=_parse_checksum(build),
            )))
    return rows


def _parse_bucket_listing(items: Iterable[Any]) -> List[_Row]:
    """Rows from a storage bucket listing named ``<prefix>/<version>/<os>/<file>``."""
    rows = []
    for item in items:
        if not isinstance(item, dict):
            continue
        name = str(item.get("name", ""))
        parts = name.split("/")
        if len(parts) < 4 or not name.endswith(_ARCHIVE_SUFFIXES):
            continue
        version = try_parse_version(parts[1])
        target = _target_from(parts[2], None)
        link = item.get("mediaLink")
        if version is None or target is None or not link:
            logger.debug("Skipping bucket object %s", name)
            continue
        rows.append((version, target, DownloadDescriptor(
            url=str(link),
            size=_parse_size(item.get("size")),
            checksum=_md5_from_base64(item.get("md5Hash")),
        )))
    return rows


def parse_catalog(document: Any) -> List[RemoteCatalogEntry]:
    """Turn a fetched catalog document into entries sorted by version ascending.

    Raises:
        NetworkError: If the document matches none of the supported shapes.
    """
    if isinstance(document, list):
        rows = _parse_version_records(document)
    elif isinstance(document, dict) and isinstance(document.get("versions"), list):
        rows = _parse_version_records(document["versions"])
    elif isinstance(document, dict) and isinstance(document.get("items", []), list) and (
        "items" in document or document.get("kind") == "storage#objects"
    ):
        if document.get("nextPageToken"):
            logger.warning("Catalog listing is paginated; only the first page was read.")
        rows = _parse_bucket_listing(document.get("items", []))
    else:
        raise NetworkError("catalog document is malformed: expected a version list")

    grouped: "OrderedDict[Version, RemoteCatalogEntry]" = OrderedDict()
    for version, target, descriptor in rows:
        entry = grouped.setdefault(version, RemoteCatalogEntry(version=version))
        if target is None:
            continue
        # first build listed for a target wins
        entry.builds.setdefault(target, descriptor)
    return sorted(grouped.values(), key=lambda e: e.version)


class CatalogClient:
    """Fetches the runtime catalog once per instance and serves lookups from it."""

    def __init__(self, url: Optional[str] = None):
        self._url = url
        self._entries: Optional[List[RemoteCatalogEntry]] = None
        self.fetch_count = 0

    @property
    def url(self) -> str:
        return self._url or Constants.CATALOG_URL

    def fetch_catalog(self, refresh: bool = False) -> List[RemoteCatalogEntry]:
        """Return all published versions, ascending.

        Args:
            refresh: Ignore the in-memory snapshot and fetch again.

        Raises:
            NetworkError: Transport failure, non-success status or malformed document.
        """
        if self._entries is not None and not refresh:
            return self._entries

        with Timer() as timer:
            document = get_json(self.url, context="catalog")
            entries = parse_catalog(document)
        self.fetch_count += 1
        if is_debug_enabled(logger):
            logger.debug(
                "Catalog fetched",
                extra=extra_context(
                    event="catalog_fetch",
                    component="catalog",
                    outcome="success",
                    target=safe_url(self.url),
                    duration_ms=timer.duration_ms(),
                    version_count=len(entries),
                )
            )
        self._entries = entries
        return entries

    def find(self, version: Version) -> Optional[RemoteCatalogEntry]:
        """Entry for exactly ``version``, or None if it is not published."""
        for entry in self.fetch_catalog():
            if entry.version == version:
                return entry
        return None
