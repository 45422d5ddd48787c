"""
Downloads packages from NuGet feeds into the cache.

Supported feeds:
- NuGet V3, addressed by its service index (`.../index.json`)
- NuGet V2, addressed by its OData root (`{feed}/package/{id}/{version}`)
- a local folder of .nupkg files (`file://` URI or plain path)

Each fetch writes to a fresh `{id}.{version}_{token}.nupkg.downloading`
file and promotes it to `.nupkg` only after the whole transfer has
completed, so scanners never see a partial package.
"""
import os
import shutil
import time
import uuid
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

import requests
from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from pkgcache.adapters.nupkg import NupkgArtifact
from pkgcache.internal.config import CacheSettings
from pkgcache.internal.constants import (
    DOWNLOAD_CHUNK_SIZE,
    DOWNLOADING_EXTENSION,
    PACKAGE_EXTENSION,
    V3_PACKAGE_BASE_ADDRESS_TYPE,
)
from pkgcache.internal.logging import get_logger
from pkgcache.kernel.artifacts import CachedArtifact, FeedReference, PackageIdentity, RetryBudget
from pkgcache.kernel.errors import FetchError, MalformedArtifactError, TransientFeedError

logger = get_logger(__name__)

_RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}


def is_local_feed(feed_uri: str) -> bool:
    parsed = urlparse(feed_uri)
    # Single letter schemes are Windows drive letters
    return parsed.scheme in ("", "file") or len(parsed.scheme) == 1


def _local_feed_dir(feed_uri: str) -> Path:
    parsed = urlparse(feed_uri)
    if parsed.scheme == "file":
        return Path(url2pathname(parsed.path))
    return Path(feed_uri)


def destination_file_name(identity: PackageIdentity) -> str:
    token = uuid.uuid4().hex.upper()
    return f"{identity.id}.{identity.version}_{token}{PACKAGE_EXTENSION}"


class NuGetFeedFetcher:
    """
    A PackageFetcher that streams packages with `requests` and retries
    transient failures with a fixed backoff.
    """
    def __init__(self, settings: CacheSettings, session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self._timeout = settings.http_timeout_seconds
        self._session = session or requests.Session()
        self._sleep = sleep

    def fetch(self, identity: PackageIdentity, feed: FeedReference, destination_dir: Path,
              retry_budget: RetryBudget) -> CachedArtifact:
        destination_dir.mkdir(parents=True, exist_ok=True)
        target_path = destination_dir / destination_file_name(identity)
        partial_path = target_path.with_name(target_path.name + DOWNLOADING_EXTENSION)

        logger.info(
            "Downloading package",
            package_id=identity.id,
            version=str(identity.version),
            feed=feed.feed_uri,
            destination=str(target_path),
        )

        retrying = Retrying(
            stop=stop_after_attempt(retry_budget.max_attempts),
            wait=wait_fixed(retry_budget.backoff_seconds),
            retry=retry_if_exception_type(TransientFeedError),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )

        attempts = 0

        def attempt():
            nonlocal attempts
            attempts += 1
            self._attempt(identity, feed, partial_path)

        try:
            retrying(attempt)
        except TransientFeedError as e:
            raise FetchError(
                f"Unable to download package after {attempts} attempt(s): {e}",
                package_id=identity.id,
                version=str(identity.version),
                feed=feed.feed_uri,
                path=str(partial_path),
            ) from e

        try:
            os.replace(partial_path, target_path)
        except OSError as e:
            raise FetchError(
                f"Unable to promote downloaded package: {e}",
                package_id=identity.id,
                version=str(identity.version),
                feed=feed.feed_uri,
                path=str(target_path),
            ) from e

        try:
            reader = NupkgArtifact(target_path)
        except MalformedArtifactError as e:
            raise MalformedArtifactError(
                f"Downloaded file is not a valid package: {e}",
                package_id=identity.id,
                version=str(identity.version),
                feed=feed.feed_uri,
                path=str(target_path),
            ) from e

        logger.debug("Package downloaded", path=str(target_path), size_bytes=target_path.stat().st_size)
        return CachedArtifact(identity=identity, file_path=target_path.resolve(), reader=reader)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Download attempt failed, retrying",
            attempt=retry_state.attempt_number,
            wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
            error=str(error),
        )

    # ------------------------------------------------------------------
    # A single attempt
    # ------------------------------------------------------------------

    def _attempt(self, identity: PackageIdentity, feed: FeedReference, partial_path: Path) -> None:
        if is_local_feed(feed.feed_uri):
            self._copy_from_folder(identity, feed, partial_path)
            return

        url = self._download_url(identity, feed)
        try:
            with self._session.get(url, stream=True, timeout=self._timeout, auth=feed.credentials) as r:
                self._raise_for_status(r, identity, feed)
                with open(partial_path, "wb") as f:
                    for chunk in r.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        f.write(chunk)
        except (requests.ConnectionError, requests.Timeout, requests.exceptions.ChunkedEncodingError) as e:
            raise TransientFeedError(f"Transport failure downloading {url}: {e}") from e
        except requests.RequestException as e:
            raise FetchError(
                f"Request to {url} failed: {e}",
                package_id=identity.id,
                version=str(identity.version),
                feed=feed.feed_uri,
            ) from e
        except OSError as e:
            # requests errors are OSErrors too; what is left here is the local write
            raise FetchError(
                f"Unable to write package to the cache: {e}",
                package_id=identity.id,
                version=str(identity.version),
                feed=feed.feed_uri,
                path=str(partial_path),
            ) from e

    def _download_url(self, identity: PackageIdentity, feed: FeedReference) -> str:
        base = feed.feed_uri.rstrip("/")
        if urlparse(base).path.lower().endswith("index.json"):
            package_base = self._v3_package_base_address(identity, feed)
            package_id = identity.id.lower()
            version = identity.version.normalized.lower()
            return f"{package_base.rstrip('/')}/{package_id}/{version}/{package_id}.{version}{PACKAGE_EXTENSION}"
        return f"{base}/package/{identity.id}/{identity.version}"

    def _v3_package_base_address(self, identity: PackageIdentity, feed: FeedReference) -> str:
        try:
            r = self._session.get(feed.feed_uri, timeout=self._timeout, auth=feed.credentials)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransientFeedError(f"Transport failure reading service index {feed.feed_uri}: {e}") from e
        except requests.RequestException as e:
            raise FetchError(f"Unable to read service index: {e}", feed=feed.feed_uri) from e
        self._raise_for_status(r, identity, feed)

        try:
            index = r.json()
        except ValueError as e:
            raise FetchError("Feed service index is not valid JSON", feed=feed.feed_uri) from e

        resources = index.get("resources", []) if isinstance(index, dict) else None
        if not isinstance(resources, list):
            raise FetchError("Feed service index is not valid: expected an object with a resources list",
                             feed=feed.feed_uri)

        for resource in resources:
            if not isinstance(resource, dict):
                continue
            types = resource.get("@type", [])
            if not isinstance(types, list):
                types = [types]
            if V3_PACKAGE_BASE_ADDRESS_TYPE in types and resource.get("@id"):
                return resource["@id"]
        raise FetchError(f"Feed service index has no {V3_PACKAGE_BASE_ADDRESS_TYPE} resource", feed=feed.feed_uri)

    @staticmethod
    def _raise_for_status(response: requests.Response, identity: PackageIdentity, feed: FeedReference) -> None:
        if response.status_code < 400:
            return
        message = f"Feed returned HTTP {response.status_code} for {response.url}"
        if response.status_code in _RETRYABLE_STATUS_CODES:
            raise TransientFeedError(message)
        raise FetchError(message, package_id=identity.id, version=str(identity.version), feed=feed.feed_uri)

    def _copy_from_folder(self, identity: PackageIdentity, feed: FeedReference, partial_path: Path) -> None:
        folder = _local_feed_dir(feed.feed_uri)
        expected = {
            f"{identity.id}.{identity.version}{PACKAGE_EXTENSION}".lower(),
            f"{identity.id}.{identity.version.normalized}{PACKAGE_EXTENSION}".lower(),
        }
        try:
            source = next((p for p in folder.iterdir() if p.name.lower() in expected), None)
        except FileNotFoundError as e:
            raise FetchError("Local feed directory does not exist", feed=feed.feed_uri) from e
        if source is None:
            raise FetchError(
                "Package was not found in the local feed",
                package_id=identity.id,
                version=str(identity.version),
                feed=feed.feed_uri,
            )

        try:
            with open(source, "rb") as src, open(partial_path, "wb") as dst:
                shutil.copyfileobj(src, dst, DOWNLOAD_CHUNK_SIZE)
        except OSError as e:
            if isinstance(e, FileNotFoundError) and not source.exists():
                raise FetchError("Package disappeared from the local feed", feed=feed.feed_uri, path=str(source)) from e
            raise TransientFeedError(f"Failed copying {source}: {e}") from e
