"""
Local filesystem side of the package cache: where the cache lives, how it
is searched, whether there is room to write into it, and how cached bytes
are hashed.
"""
import hashlib
import os
import shutil
from pathlib import Path
from typing import Iterator, Optional

from pkgcache.adapters.nupkg import try_read_artifact
from pkgcache.internal.config import CacheSettings
from pkgcache.internal.constants import HASH_CHUNK_SIZE, PACKAGE_EXTENSION
from pkgcache.internal.logging import get_logger
from pkgcache.kernel.artifacts import ArtifactSkipped, CachedArtifact, PackageArtifact, PackageIdentity
from pkgcache.kernel.errors import ConfigurationError, FatalCapacityError

logger = get_logger(__name__)


class CacheLocator:
    """
    Maps a feed id to its cache root: `{home}/Files[/{feed_id}]`.
    """
    def __init__(self, settings: CacheSettings):
        if settings.files_dir is None:
            raise ConfigurationError("Package cache home directory has not been configured")
        self._base = settings.files_dir

    @property
    def base(self) -> Path:
        return self._base

    def root(self, feed_id: Optional[str] = None) -> Path:
        if feed_id is None or not feed_id.strip():
            return self._base
        return self._base / feed_id


class CacheScanner:
    """
    Searches a cache root for packages. Files that cannot be read as
    packages are skipped, never reported as errors.
    """

    def _candidates(self, root: Path, prefix: str = "") -> Iterator[Path]:
        prefix = prefix.lower()
        for dirpath, _dirnames, filenames in os.walk(root):
            for filename in filenames:
                lowered = filename.lower()
                if lowered.endswith(PACKAGE_EXTENSION) and lowered.startswith(prefix):
                    yield Path(dirpath) / filename

    def find(self, root: Path, identity: PackageIdentity) -> Optional[CachedArtifact]:
        logger.debug("Checking package cache", package_id=identity.id, version=str(identity.version), root=str(root))
        root.mkdir(parents=True, exist_ok=True)

        for candidate in self._candidates(root, identity.cache_prefix):
            result = try_read_artifact(candidate)
            if isinstance(result, ArtifactSkipped):
                logger.debug("Skipping unreadable cache entry", path=str(result.path), reason=result.reason)
                continue

            artifact = result.artifact
            if identity.matches(artifact.identity_id, artifact.version_string):
                return CachedArtifact(identity=identity, file_path=candidate.resolve(), reader=artifact)
        return None

    def list_entries(self, root: Path) -> Iterator[CachedArtifact]:
        """Yields every valid package under root."""
        if not root.is_dir():
            return
        for candidate in self._candidates(root):
            result = try_read_artifact(candidate)
            if isinstance(result, ArtifactSkipped):
                continue
            artifact = result.artifact
            try:
                identity = PackageIdentity(artifact.identity_id, artifact.version_string)
            except ValueError:
                logger.debug("Skipping cache entry with unparseable version", path=str(candidate))
                continue
            yield CachedArtifact(identity=identity, file_path=candidate.resolve(), reader=artifact)


class DiskSpaceGuard:
    def __init__(self, settings: CacheSettings):
        self._settings = settings

    def ensure_free_space(self, root: Path) -> None:
        if self._settings.skip_free_space_check:
            logger.debug("Free disk space check has been disabled", root=str(root))
            return

        required = self._settings.required_free_space_bytes
        _total, _used, free = shutil.disk_usage(root)
        if free < required:
            raise FatalCapacityError(
                f"The drive containing '{root}' does not have enough free disk space available for this "
                f"operation to proceed. The disk only has {_format_bytes(free)} available; please free up "
                f"at least {_format_bytes(required)}.",
                path=str(root),
            )


def _format_bytes(size: int) -> str:
    size = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            return f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} TB"


def compute_hash(artifact: PackageArtifact, algorithm: str) -> str:
    """Hex digest of the artifact's full content, read once start to end."""
    h = hashlib.new(algorithm)
    with artifact.open() as stream:
        for chunk in iter(lambda: stream.read(HASH_CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()
