"""
This module defines the acquisition service of the pkgcache kernel.
It guarantees a package is available locally, reusing the cache when it
can, delegating to the locator, scanner, disk guard and fetcher adapters.
"""
import os
from typing import Optional

from pkgcache.internal.logging import get_logger
from pkgcache.kernel.artifacts import (
    CachedArtifact,
    FeedReference,
    FetchResult,
    PackageFetcher,
    PackageIdentity,
    RetryBudget,
)
from pkgcache.kernel.dependencies import report_dependencies

logger = get_logger(__name__)


class PackageAcquisitionService:
    """
    Orchestrates one acquisition: cache lookup, then (on a miss or when
    forced) disk space check, fetch and dependency report, then hashing.
    """
    def __init__(self, locator, scanner, disk_guard, fetcher: PackageFetcher, hash_function,
                 hash_algorithm: str = "sha1"):
        self.locator = locator
        self.scanner = scanner
        self.disk_guard = disk_guard
        self.fetcher = fetcher
        self.hash_function = hash_function
        self.hash_algorithm = hash_algorithm

    def acquire(self, identity: PackageIdentity, feed: FeedReference, force_download: bool = False,
                retry_budget: Optional[RetryBudget] = None) -> FetchResult:
        """
        Returns the local path, content hash and size of the package.
        Errors from collaborators propagate unchanged; nothing is rolled back.
        """
        retry_budget = retry_budget or RetryBudget()
        cache_root = self.locator.root(feed.feed_id)

        cached: Optional[CachedArtifact] = None
        if not force_download:
            cached = self.scanner.find(cache_root, identity)

        if cached is not None:
            logger.info("Package was found in cache. No need to download.", path=str(cached.file_path))
            artifact = cached
        else:
            cache_root.mkdir(parents=True, exist_ok=True)
            self.disk_guard.ensure_free_space(cache_root)
            artifact = self.fetcher.fetch(identity, feed, cache_root, retry_budget)
            report_dependencies(artifact.reader)

        size = os.path.getsize(artifact.file_path)
        content_hash = self.hash_function(artifact.reader, self.hash_algorithm)
        return FetchResult(local_path=artifact.file_path, content_hash=content_hash, size_bytes=size)
