"""
Error taxonomy for package acquisition.

Every fatal condition surfaces to callers as an AcquisitionError subclass
carrying enough context (package, feed, path) to diagnose the failure.
"""
from typing import Any


class AcquisitionError(Exception):
    """Base class for all fatal acquisition failures."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = {k: v for k, v in context.items() if v is not None}

    def __str__(self) -> str:
        message = super().__str__()
        if not self.context:
            return message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{message} ({details})"


class ConfigurationError(AcquisitionError):
    """The cache base directory (or another required setting) is missing."""


class FatalCapacityError(AcquisitionError):
    """Not enough free disk space to download into the cache."""


class FetchError(AcquisitionError):
    """The package could not be retrieved from the feed."""


class TransientFeedError(FetchError):
    """A retryable transport failure. Escalated to FetchError once the retry budget is spent."""


class MalformedArtifactError(AcquisitionError):
    """A fully transferred file could not be read as a package."""
