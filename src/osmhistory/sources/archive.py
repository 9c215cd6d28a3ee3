"""Download of full-history OSM archives (`*.osh.pbf`).

History archives are large and served by mirrors that throttle and drop
connections, so the download retries transient failures with exponential
backoff. Geofabrik's internal server only serves history files to logged-in
OSM users; the session cookie is read from the environment variable named by
`source.cookie_env` and never stored in the config file.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Optional

import httpx

from osmhistory.errors import ArchiveDownloadError, ConfigurationError
from osmhistory.settings import AppConfig, SourceSection
from osmhistory.storage.snapshots import ensure_parent_dir

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def _is_retryable_status(status_code: int) -> bool:
    return status_code in {408, 429, 500, 502, 503, 504}


def _parse_retry_after_seconds(value: Optional[str]) -> Optional[float]:
    """Seconds from a numeric Retry-After header; the HTTP-date form is ignored."""

    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


def _backoff_seconds(
    settings: SourceSection, attempt: int, retry_after_seconds: Optional[float] = None
) -> float:
    delay = max(0.0, float(settings.retry_backoff_seconds)) * (2**attempt)
    if retry_after_seconds is not None:
        delay = max(delay, retry_after_seconds)
    return delay


def _cookie_headers(settings: SourceSection) -> dict[str, str]:
    cookie = os.getenv(settings.cookie_env, "").strip() if settings.cookie_env else ""
    return {"cookie": cookie} if cookie else {}


def _stream_to(http_client: httpx.Client, url: str, dest: Path, headers: dict[str, str]) -> int:
    partial = dest.with_name(dest.name + ".part")
    written = 0
    try:
        with http_client.stream("GET", url, headers=headers) as response:
            response.raise_for_status()
            with partial.open("wb") as handle:
                for chunk in response.iter_bytes(CHUNK_SIZE):
                    handle.write(chunk)
                    written += len(chunk)
    except BaseException:
        partial.unlink(missing_ok=True)
        raise
    partial.replace(dest)
    return written


def download_archive(
    url: str,
    dest: Path,
    *,
    settings: SourceSection,
    http_client: Optional[httpx.Client] = None,
) -> Path:
    """Stream `url` to `dest`, retrying timeouts, connection errors and 408/429/5xx."""

    if not url:
        raise ConfigurationError("No archive URL configured (source.url)")

    ensure_parent_dir(dest)
    owns_client = http_client is None
    client = http_client or httpx.Client(
        timeout=settings.request_timeout_seconds, follow_redirects=True
    )
    headers = _cookie_headers(settings)
    max_retries = max(0, int(settings.max_retries))

    last_error: Optional[Exception] = None
    try:
        for attempt in range(max_retries + 1):
            try:
                logger.info("Downloading %s -> %s", url, dest)
                size = _stream_to(client, url, dest, headers)
                logger.info("Downloaded %.1f MiB to %s", size / CHUNK_SIZE, dest)
                return dest
            except httpx.HTTPStatusError as exc:
                last_error = exc
                status = int(exc.response.status_code)
                if not _is_retryable_status(status) or attempt >= max_retries:
                    break
                retry_after_seconds = _parse_retry_after_seconds(exc.response.headers.get("retry-after"))
                delay = _backoff_seconds(settings, attempt, retry_after_seconds)
                logger.warning(
                    "Archive download failed (%s). Retrying in %.2fs (attempt %s/%s).",
                    status,
                    delay,
                    attempt + 1,
                    max_retries,
                )
                time.sleep(delay)
            except httpx.TransportError as exc:
                last_error = exc
                if attempt >= max_retries:
                    break
                delay = _backoff_seconds(settings, attempt)
                logger.warning(
                    "Archive download error (%s). Retrying in %.2fs (attempt %s/%s).",
                    type(exc).__name__,
                    delay,
                    attempt + 1,
                    max_retries,
                )
                time.sleep(delay)
    finally:
        if owns_client:
            client.close()

    raise ArchiveDownloadError(f"Archive download failed after retries: {last_error}") from last_error


def download_configured_archive(config: AppConfig, *, http_client: Optional[httpx.Client] = None) -> Path:
    return download_archive(
        config.source.url or "",
        config.source.archive_path,
        settings=config.source,
        http_client=http_client,
    )
