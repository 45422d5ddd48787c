"""
NuGet-style version values.

A version is `major[.minor[.patch[.revision]]][-release][+metadata]`.
Two versions are equal when their numeric parts match (a missing part is
zero) and their release labels match case-insensitively. Build metadata
never takes part in equality.
"""
import re
from typing import Tuple, Union

_VERSION_PATTERN = re.compile(
    r"^\s*"
    r"(?P<numbers>\d+(?:\.\d+){0,3})"
    r"(?:-(?P<release>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<metadata>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"\s*$"
)


class NuGetVersion:
    __slots__ = ("major", "minor", "patch", "revision", "release", "metadata", "original")

    def __init__(self, major: int, minor: int = 0, patch: int = 0, revision: int = 0,
                 release: str = "", metadata: str = "", original: str | None = None):
        self.major = major
        self.minor = minor
        self.patch = patch
        self.revision = revision
        self.release = release
        self.metadata = metadata
        self.original = original

    @classmethod
    def parse(cls, value: str) -> "NuGetVersion":
        match = _VERSION_PATTERN.match(value or "")
        if not match:
            raise ValueError(f"'{value}' is not a valid version string")
        numbers = [int(n) for n in match.group("numbers").split(".")]
        numbers += [0] * (4 - len(numbers))
        return cls(
            *numbers,
            release=match.group("release") or "",
            metadata=match.group("metadata") or "",
            original=value.strip(),
        )

    @classmethod
    def try_parse(cls, value: str) -> "NuGetVersion | None":
        try:
            return cls.parse(value)
        except (TypeError, ValueError):
            return None

    @property
    def is_prerelease(self) -> bool:
        return bool(self.release)

    @property
    def normalized(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.revision:
            text += f".{self.revision}"
        if self.release:
            text += f"-{self.release}"
        return text

    def _key(self) -> Tuple[int, int, int, int, str]:
        return (self.major, self.minor, self.patch, self.revision, self.release.lower())

    def __eq__(self, other: object) -> bool:
        if isinstance(other, str):
            other = NuGetVersion.try_parse(other)
        if not isinstance(other, NuGetVersion):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        return self.original if self.original is not None else self.normalized

    def __repr__(self) -> str:
        return f"NuGetVersion('{self}')"


def coerce_version(value: Union[str, NuGetVersion]) -> NuGetVersion:
    if isinstance(value, NuGetVersion):
        return value
    return NuGetVersion.parse(str(value))
