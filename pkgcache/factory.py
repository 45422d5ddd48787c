import time
from typing import Callable, Optional

import requests

from pkgcache.adapters.feed_http import NuGetFeedFetcher
from pkgcache.adapters.storage_fs import CacheLocator, CacheScanner, DiskSpaceGuard, compute_hash
from pkgcache.internal.config import CacheSettings
from pkgcache.kernel.acquisition import PackageAcquisitionService


class AcquisitionServiceFactory:
    @staticmethod
    def create(settings: CacheSettings, session: Optional[requests.Session] = None,
               sleep: Callable[[float], None] = time.sleep) -> PackageAcquisitionService:
        return PackageAcquisitionService(
            locator=CacheLocator(settings),  # Raises ConfigurationError without a home directory
            scanner=CacheScanner(),
            disk_guard=DiskSpaceGuard(settings),
            fetcher=NuGetFeedFetcher(settings, session=session, sleep=sleep),
            hash_function=compute_hash,
            hash_algorithm=settings.hash_algorithm,
        )
