"""
Defines the data contracts and ports for acquiring and caching packages.

This is a core part of the Kernel. It defines the 'ports' for which
artifact readers and feed fetchers must be provided by adapters.
"""
from abc import abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, List, Optional, Protocol, Union

from pkgcache.kernel.versioning import NuGetVersion, coerce_version


@dataclass(frozen=True, eq=False)
class PackageIdentity:
    """
    The (id, version) pair naming a fetchable package within a feed.
    A string version is parsed on construction. Ids compare
    case-insensitively and versions compare as parsed versions.
    """
    id: str
    version: Union[NuGetVersion, str]

    def __post_init__(self):
        if not self.id or not self.id.strip():
            raise ValueError("package id cannot be empty")
        object.__setattr__(self, "version", coerce_version(self.version))

    @property
    def cache_prefix(self) -> str:
        return f"{self.id}.{self.version}_"

    def matches(self, other_id: str, other_version: str) -> bool:
        """
        Cache matching rule: ids compare case-insensitively, and the versions
        match either as exact strings or as parsed versions.
        """
        if (other_id or "").lower() != self.id.lower():
            return False
        exact_match = str(other_version).lower() == str(self.version).lower()
        parsed = NuGetVersion.try_parse(str(other_version))
        parsed_match = parsed is not None and parsed == self.version
        return exact_match or parsed_match

    def __eq__(self, other) -> bool:
        if not isinstance(other, PackageIdentity):
            return NotImplemented
        return self.id.lower() == other.id.lower() and self.version == other.version

    def __hash__(self) -> int:
        return hash((self.id.lower(), self.version))

    def __str__(self) -> str:
        return f"{self.id} {self.version}"


@dataclass(frozen=True)
class FeedReference:
    """A remote (or folder) package source. feed_id namespaces the cache root."""
    feed_uri: str
    feed_id: Optional[str] = None
    credentials: Any = field(default=None, repr=False)


@dataclass(frozen=True)
class RetryBudget:
    max_attempts: int = 5
    backoff_seconds: float = 10.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_seconds < 0:
            raise ValueError("backoff_seconds cannot be negative")


@dataclass(frozen=True)
class DependencyDescriptor:
    id: str
    version_range: str = ""
    target_framework: str = ""

    def __str__(self) -> str:
        if not self.version_range:
            return self.id
        return f"{self.id} ({self.version_range})"


class PackageArtifact(Protocol):
    """
    The interface (port) for a package file whose metadata has been read.
    Format differences (flat vs. grouped dependency lists) are normalized
    by the implementation.
    """
    path: Path

    @property
    @abstractmethod
    def identity_id(self) -> str:
        """The package id declared by the package itself."""
        ...

    @property
    @abstractmethod
    def version_string(self) -> str:
        """The version declared by the package itself, as written."""
        ...

    @abstractmethod
    def open(self) -> BinaryIO:
        """Opens the raw package bytes. Callers must close the stream."""
        ...

    @abstractmethod
    def dependencies(self) -> List[DependencyDescriptor]:
        """Flat list of declared dependencies across all target frameworks."""
        ...


@dataclass(frozen=True)
class CachedArtifact:
    """
    A fully written package file inside a cache root. Read-only once
    discovered; a new fetch always writes a new file instead.
    """
    identity: PackageIdentity
    file_path: Path
    reader: PackageArtifact = field(repr=False)


@dataclass(frozen=True)
class ArtifactRead:
    artifact: PackageArtifact


@dataclass(frozen=True)
class ArtifactSkipped:
    path: Path
    reason: str


ArtifactReadResult = Union[ArtifactRead, ArtifactSkipped]


@dataclass(frozen=True)
class FetchResult:
    local_path: Path
    content_hash: str
    size_bytes: int

    def to_dict(self) -> dict:
        return {
            "local_path": str(self.local_path),
            "content_hash": self.content_hash,
            "size_bytes": self.size_bytes,
        }


class PackageFetcher(Protocol):
    """
    The interface (port) for retrieving a package from a feed into a
    destination directory.
    """

    @abstractmethod
    def fetch(self, identity: PackageIdentity, feed: FeedReference, destination_dir: Path,
              retry_budget: RetryBudget) -> CachedArtifact:
        """
        Downloads the package under a fresh unique name in destination_dir.

        This is expected to be a long-running operation. Transient failures
        are retried within retry_budget; exhausting it raises FetchError.

        Returns:
            A CachedArtifact for the newly written file.
        """
        ...
