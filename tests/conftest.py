"""Shared fixtures: a Linux x86_64 install root, fake catalog and fake downloads."""

import hashlib
import io
import stat
import tarfile
import threading
import zipfile
from pathlib import Path
from typing import Dict, List, Optional

import pytest
from unittest.mock import patch

from common.platform import Arch, Os, Target
from constants import Constants
from errors import NetworkError
from registry.catalog import CatalogClient
from runtime.store import InstallationStore
from versioning.models import Checksum, DownloadDescriptor, RemoteCatalogEntry
from versioning.parser import parse_version

LINUX = Target(Os.LINUX, Arch.X86_64)
BINARY_SCRIPT = "#!/bin/sh\necho ambient\n"


def make_zip(binary_name: str = "ambient", wrapper: Optional[str] = None,
             include_binary: bool = True) -> bytes:
    """Build an in-memory release archive."""
    buf = io.BytesIO()
    prefix = f"{wrapper}/" if wrapper else ""
    with zipfile.ZipFile(buf, "w") as zf:
        if include_binary:
            info = zipfile.ZipInfo(prefix + binary_name)
            info.external_attr = (stat.S_IFREG | 0o755) << 16
            zf.writestr(info, BINARY_SCRIPT)
        zf.writestr(prefix + "assets/readme.txt", "assets")
    return buf.getvalue()


def make_tar_gz(binary_name: str = "ambient") -> bytes:
    buf = io.BytesIO()
    payload = BINARY_SCRIPT.encode()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        info = tarfile.TarInfo(binary_name)
        info.size = len(payload)
        info.mode = 0o755
        tar.addfile(info, io.BytesIO(payload))
    return buf.getvalue()


def sha256(data: bytes) -> Checksum:
    return Checksum("sha256", hashlib.sha256(data).hexdigest())


def catalog_entry(version: str, builds: Optional[Dict[Target, DownloadDescriptor]] = None) -> RemoteCatalogEntry:
    return RemoteCatalogEntry(version=parse_version(version), builds=dict(builds or {}))


def release(version: str, data: bytes, target: Target = LINUX, checksum: bool = True,
            size: bool = True, suffix: str = ".zip") -> RemoteCatalogEntry:
    """A catalog entry with one build served from a fake URL."""
    url = f"https://downloads.invalid/{version}/{target}/ambient{suffix}"
    return catalog_entry(version, {
        target: DownloadDescriptor(
            url=url,
            size=len(data) if size else None,
            checksum=sha256(data) if checksum else None,
        )
    })


def url_of(entry: RemoteCatalogEntry, target: Target = LINUX) -> str:
    return entry.builds[target].url


class FakeCatalog(CatalogClient):
    """Catalog client serving fixed entries and counting fetches."""

    def __init__(self, entries: Optional[List[RemoteCatalogEntry]] = None,
                 error: Optional[Exception] = None):
        super().__init__("https://catalog.invalid/index.json")
        self.entries = list(entries or [])
        self.error = error

    def fetch_catalog(self, refresh: bool = False):
        self.fetch_count += 1
        if self.error is not None:
            raise self.error
        return sorted(self.entries, key=lambda e: e.version)


class FakeDownloads:
    """Stands in for common.http_client.download_to_file."""

    def __init__(self):
        self.payloads: Dict[str, bytes] = {}
        self.calls: List[str] = []
        self.before_write = None
        self._lock = threading.Lock()

    def serve(self, url: str, data: bytes) -> None:
        self.payloads[url] = data

    def __call__(self, url, destination, *, context="download", progress=None):
        with self._lock:
            self.calls.append(url)
        if url not in self.payloads:
            raise NetworkError(f"{context} request returned HTTP 404", url=url, status_code=404)
        if self.before_write is not None:
            self.before_write(url)
        data = self.payloads[url]
        Path(destination).write_bytes(data)
        if progress:
            progress(len(data), len(data))
        return len(data)


def install_fake(store: InstallationStore, version: str) -> Path:
    """Create a valid-looking installed version directly on disk."""
    directory = store.root / version
    directory.mkdir(parents=True)
    binary = directory / store.target.binary_name
    binary.write_text(BINARY_SCRIPT)
    binary.chmod(0o755)
    return directory


@pytest.fixture(autouse=True)
def _restore_constants(monkeypatch, tmp_path):
    """Keep Constants overrides and user config from leaking between tests."""
    saved = {k: v for k, v in vars(Constants).items() if k.isupper()}
    monkeypatch.setenv(Constants.ENV_CONFIG, str(tmp_path / "no-such-settings.yml"))
    for name in (Constants.ENV_CATALOG_URL, Constants.ENV_INSTALL_ROOT,
                 Constants.ENV_REQUEST_TIMEOUT, Constants.ENV_LOG_LEVEL):
        monkeypatch.delenv(name, raising=False)
    yield
    for key, value in saved.items():
        setattr(Constants, key, value)


@pytest.fixture
def store(tmp_path):
    return InstallationStore(tmp_path / "runtimes", LINUX)


@pytest.fixture
def downloads():
    fake = FakeDownloads()
    with patch("runtime.installer.download_to_file", fake):
        yield fake
