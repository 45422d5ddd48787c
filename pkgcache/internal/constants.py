PACKAGE_EXTENSION = ".nupkg"
DOWNLOADING_EXTENSION = ".downloading"
MANIFEST_EXTENSION = ".nuspec"

FILES_DIR_NAME = "Files"

DEFAULT_REQUIRED_FREE_SPACE_MB = 500
DEFAULT_HASH_ALGORITHM = "sha1"
DEFAULT_HTTP_TIMEOUT_SECONDS = 60.0
DEFAULT_MAX_DOWNLOAD_ATTEMPTS = 5
DEFAULT_DOWNLOAD_ATTEMPT_BACKOFF_SECONDS = 10.0

DOWNLOAD_CHUNK_SIZE = 1024 * 1024
HASH_CHUNK_SIZE = 1024 * 1024

DEPENDENCIES_DOCUMENTATION_URL = "http://octopusdeploy.com/documentation/packaging"

V3_PACKAGE_BASE_ADDRESS_TYPE = "PackageBaseAddress/3.0.0"

ENV_HOME = "PKGCACHE_HOME"
ENV_FREE_SPACE_OVERRIDE_MB = "PKGCACHE_FREE_DISK_SPACE_OVERRIDE_MB"
ENV_SKIP_FREE_SPACE_CHECK = "PKGCACHE_SKIP_FREE_DISK_SPACE_CHECK"
ENV_HASH_ALGORITHM = "PKGCACHE_HASH_ALGORITHM"
ENV_HTTP_TIMEOUT = "PKGCACHE_HTTP_TIMEOUT"
