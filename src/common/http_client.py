"""Shared HTTP helpers used by the catalog client and the installer.

Encapsulates common request/timeout error handling so modules avoid
duplicating try/except blocks. Every failure surfaces as NetworkError; nothing
here retries.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from errors import NetworkError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def _default_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    merged = {"User-Agent": Constants.USER_AGENT}
    if headers:
        merged.update(headers)
    return merged


def safe_get(url: str, *, context: str, **kwargs: Any) -> requests.Response:
    """Perform a GET request with consistent error handling and DEBUG traces.

    Args:
        url: Target URL.
        context: Human-readable source tag for logs (e.g., "catalog", "download").
        **kwargs: Passed through to requests.get.

    Returns:
        requests.Response: The HTTP response object (any status).

    Raises:
        NetworkError: On timeout or connection failure.
    """
    safe_target = safe_url(url)
    headers = _default_headers(kwargs.pop("headers", None))
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_target,
                    context=context
                )
            )
        try:
            res = requests.get(url, timeout=Constants.REQUEST_TIMEOUT, headers=headers, **kwargs)
        except requests.Timeout as exc:
            raise NetworkError(
                f"{context} request timed out after {Constants.REQUEST_TIMEOUT} seconds",
                url=safe_target,
            ) from exc
        except requests.RequestException as exc:  # includes ConnectionError
            raise NetworkError(f"{context} connection error: {exc}", url=safe_target) from exc
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    status_code=res.status_code,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                    context=context
                )
            )
        return res


def _raise_for_status(res: requests.Response, url: str, context: str) -> None:
    if 200 <= res.status_code < 300:
        return
    res.close()
    raise NetworkError(
        f"{context} request returned HTTP {res.status_code}",
        url=safe_url(url),
        status_code=res.status_code,
    )


def get_json(url: str, *, context: str, **kwargs: Any) -> Any:
    """GET ``url`` and decode its JSON body.

    Raises:
        NetworkError: On transport failure, non-2xx status, or a body that is
            not valid JSON.
    """
    res = safe_get(url, context=context, **kwargs)
    _raise_for_status(res, url, context)
    try:
        return json.loads(res.text)
    except ValueError as exc:
        if is_debug_enabled(logger):
            logger.debug(
                "JSON decode error",
                extra=extra_context(
                    event="parse",
                    component="http_client",
                    action="get_json",
                    outcome="json_decode_error",
                    status_code=res.status_code,
                    target=safe_url(url)
                )
            )
        raise NetworkError(f"{context} returned malformed JSON: {exc}", url=safe_url(url)) from exc


def download_to_file(
    url: str,
    destination: Path,
    *,
    context: str = "download",
    progress: Optional[ProgressCallback] = None,
) -> int:
    """Stream ``url`` into ``destination``.

    Args:
        url: Archive URL.
        destination: File to create; its parent must exist.
        context: Log tag.
        progress: Optional callback receiving (bytes_so_far, total_or_0).

    Returns:
        Number of bytes written.

    Raises:
        NetworkError: On transport failure, non-2xx status or a dropped stream.
    """
    res = safe_get(url, context=context, stream=True)
    _raise_for_status(res, url, context)
    total = int(res.headers.get("content-length") or 0)
    written = 0
    try:
        with open(destination, "wb") as fh:
            for chunk in res.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                if not chunk:
                    continue
                fh.write(chunk)
                written += len(chunk)
                if progress:
                    progress(written, total)
    except requests.RequestException as exc:
        raise NetworkError(f"{context} interrupted: {exc}", url=safe_url(url)) from exc
    finally:
        res.close()
    logger.debug("Downloaded %d bytes from %s", written, safe_url(url))
    return written
