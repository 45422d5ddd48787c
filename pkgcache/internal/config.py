"""
Explicit configuration for the package cache.

Settings are built once (from arguments or the environment) and injected
into the adapters that need them. Nothing below the CLI reads the
environment on its own.
"""
import hashlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Optional

from pkgcache.internal import constants
from pkgcache.internal.logging import get_logger
from pkgcache.kernel.errors import ConfigurationError

logger = get_logger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def _read_number(env: Mapping[str, str], variable: str, convert: Callable[[str], float]):
    value = env.get(variable)
    if not value:
        return None
    try:
        return convert(value)
    except ValueError as e:
        raise ConfigurationError(f"Environment variable is not a valid number: {value!r}", variable=variable) from e


@dataclass(frozen=True)
class CacheSettings:
    home_dir: Optional[Path] = None
    free_space_override_mb: Optional[int] = None
    skip_free_space_check: bool = False
    hash_algorithm: str = constants.DEFAULT_HASH_ALGORITHM
    http_timeout_seconds: float = constants.DEFAULT_HTTP_TIMEOUT_SECONDS

    def __post_init__(self):
        if self.home_dir is not None and not isinstance(self.home_dir, Path):
            object.__setattr__(self, "home_dir", Path(self.home_dir))
        if self.hash_algorithm.lower() not in hashlib.algorithms_available:
            raise ValueError(f"Unsupported hash algorithm: {self.hash_algorithm}")
        if self.free_space_override_mb is not None and self.free_space_override_mb < 0:
            raise ValueError("free_space_override_mb cannot be negative")

    @property
    def files_dir(self) -> Optional[Path]:
        """Base root of the package cache, or None when home is not configured."""
        if self.home_dir is None:
            return None
        return self.home_dir / constants.FILES_DIR_NAME

    @property
    def required_free_space_bytes(self) -> int:
        megabytes = self.free_space_override_mb
        if megabytes is None:
            megabytes = constants.DEFAULT_REQUIRED_FREE_SPACE_MB
        return megabytes * 1024 * 1024

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CacheSettings":
        """
        Builds settings from PKGCACHE_* environment variables.

        A missing PKGCACHE_HOME is logged rather than raised; the resulting
        settings are rejected when a CacheLocator is built from them. Values
        that cannot be parsed raise ConfigurationError.
        """
        env = os.environ if environ is None else environ

        home = env.get(constants.ENV_HOME)
        if not home:
            logger.error("Environment variable has not been set", variable=constants.ENV_HOME)

        override = _read_number(env, constants.ENV_FREE_SPACE_OVERRIDE_MB, int)
        timeout = _read_number(env, constants.ENV_HTTP_TIMEOUT, float)

        try:
            return cls(
                home_dir=Path(home) if home else None,
                free_space_override_mb=override,
                skip_free_space_check=env.get(constants.ENV_SKIP_FREE_SPACE_CHECK, "").strip().lower() in _TRUTHY,
                hash_algorithm=env.get(constants.ENV_HASH_ALGORITHM) or constants.DEFAULT_HASH_ALGORITHM,
                http_timeout_seconds=constants.DEFAULT_HTTP_TIMEOUT_SECONDS if timeout is None else timeout,
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid cache configuration: {e}") from e
