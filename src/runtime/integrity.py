"""Download verification: size and published digest."""
from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Optional

from errors import IntegrityError
from versioning.models import Checksum

logger = logging.getLogger(__name__)


def file_digest(path: Path, algorithm: str = "sha256", chunk_size: int = 65536) -> str:
    digest = hashlib.new(algorithm)
    with open(path, "rb") as f:
        while True:
            data = f.read(chunk_size)
            if not data:
                break
            digest.update(data)
    return digest.hexdigest()


def validate_download(path: Path, checksum: Optional[Checksum], expected_size: Optional[int] = None) -> None:
    """Check ``path`` against the published size and checksum.

    Either may be absent from the catalog, in which case it is not checked.

    Raises:
        IntegrityError: On any mismatch.
    """
    if not path.is_file():
        raise IntegrityError(f"downloaded file {path.name} is missing")

    file_size = path.stat().st_size
    if expected_size is not None and file_size != expected_size:
        raise IntegrityError(f"size mismatch: expected {expected_size} bytes, got {file_size}")

    if checksum is None:
        logger.debug("No checksum published for %s; skipping digest check", path.name)
        return
    actual = file_digest(path, checksum.algorithm)
    if actual != checksum.hexdigest.lower():
        raise IntegrityError(
            f"{checksum.algorithm} mismatch: expected {checksum.hexdigest}, got {actual}",
            hint="the download may be corrupted; retry the install",
        )
