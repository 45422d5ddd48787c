"""
Reads .nupkg files (zip archives carrying a .nuspec manifest).

The manifest is parsed eagerly when the artifact is opened, so a file that
is truncated, still being written, or not a package at all fails at that
point. `try_read_artifact` turns those failures into an ArtifactSkipped
result for callers that scan directories.
"""
import zipfile
import zlib
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import BinaryIO, List

from pkgcache.internal.constants import MANIFEST_EXTENSION
from pkgcache.kernel.artifacts import ArtifactRead, ArtifactReadResult, ArtifactSkipped, DependencyDescriptor
from pkgcache.kernel.errors import MalformedArtifactError


def _local_name(tag: str) -> str:
    # nuspec files use several schema namespaces; match on the local name only
    return tag.rsplit("}", 1)[-1]


def _child(element: ET.Element, name: str):
    return next((c for c in element if _local_name(c.tag) == name), None)


def _format_range(version_range: str) -> str:
    version_range = version_range.strip()
    if not version_range:
        return ""
    if version_range[0] in "[(":
        return version_range
    # A bare version means "at least this version"
    return f">= {version_range}"


class NupkgArtifact:
    """A .nupkg file on disk with its manifest metadata."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._id, self._version, self._dependencies = self._read_manifest()

    def _read_manifest(self):
        try:
            with zipfile.ZipFile(self.path) as archive:
                names = [n for n in archive.namelist() if "/" not in n and n.lower().endswith(MANIFEST_EXTENSION)]
                if not names:
                    raise MalformedArtifactError("Package has no manifest", path=str(self.path))
                root = ET.fromstring(archive.read(names[0]))
        except zipfile.BadZipFile as e:
            raise MalformedArtifactError(f"Not a valid package archive: {e}", path=str(self.path)) from e
        except ET.ParseError as e:
            raise MalformedArtifactError(f"Package manifest is not valid XML: {e}", path=str(self.path)) from e
        except (zlib.error, EOFError, KeyError, NotImplementedError, RuntimeError, ValueError) as e:
            raise MalformedArtifactError(f"Package archive is corrupt: {e}", path=str(self.path)) from e

        metadata = _child(root, "metadata")
        if metadata is None:
            raise MalformedArtifactError("Package manifest has no metadata element", path=str(self.path))

        id_element = _child(metadata, "id")
        version_element = _child(metadata, "version")
        package_id = (id_element.text or "").strip() if id_element is not None else ""
        version = (version_element.text or "").strip() if version_element is not None else ""
        if not package_id or not version:
            raise MalformedArtifactError("Package manifest is missing id or version", path=str(self.path))

        return package_id, version, self._read_dependencies(metadata)

    def _read_dependencies(self, metadata: ET.Element) -> List[DependencyDescriptor]:
        dependencies_element = _child(metadata, "dependencies")
        if dependencies_element is None:
            return []

        found = []
        for item in dependencies_element:
            name = _local_name(item.tag)
            if name == "dependency":
                found.append(self._descriptor(item, ""))
            elif name == "group":
                framework = item.get("targetFramework", "")
                found.extend(self._descriptor(d, framework) for d in item if _local_name(d.tag) == "dependency")
        return [d for d in found if d.id]

    @staticmethod
    def _descriptor(element: ET.Element, framework: str) -> DependencyDescriptor:
        return DependencyDescriptor(
            id=element.get("id", "").strip(),
            version_range=_format_range(element.get("version", "")),
            target_framework=framework,
        )

    @property
    def identity_id(self) -> str:
        return self._id

    @property
    def version_string(self) -> str:
        return self._version

    def open(self) -> BinaryIO:
        return open(self.path, "rb")

    def dependencies(self) -> List[DependencyDescriptor]:
        return list(self._dependencies)

    def __repr__(self) -> str:
        return f"NupkgArtifact({self._id} {self._version}, path={self.path})"


def try_read_artifact(path: Path) -> ArtifactReadResult:
    """
    Reads a package without raising for files that are missing, unreadable
    or malformed. Concurrent writers may be promoting or removing files
    while a scan runs, so these are expected outcomes.
    """
    try:
        return ArtifactRead(NupkgArtifact(path))
    except FileNotFoundError:
        return ArtifactSkipped(Path(path), "file no longer exists")
    except MalformedArtifactError as e:
        return ArtifactSkipped(Path(path), str(e))
    except OSError as e:
        return ArtifactSkipped(Path(path), f"unreadable: {e}")
