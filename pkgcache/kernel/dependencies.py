"""
Advisory check for packages that declare dependencies.

Dependencies are never fetched. When a freshly downloaded package declares
any, a single informational event lists them.
"""
from pkgcache.internal.constants import DEPENDENCIES_DOCUMENTATION_URL
from pkgcache.internal.logging import get_logger
from pkgcache.kernel.artifacts import PackageArtifact

logger = get_logger(__name__)


def report_dependencies(artifact: PackageArtifact) -> bool:
    """Logs the package's declared dependencies. Returns True if there were any."""
    dependencies = artifact.dependencies()
    if not dependencies:
        return False

    logger.info(
        f"NuGet packages with dependencies are not currently supported, and dependencies won't be "
        f"installed. The package '{artifact.identity_id} {artifact.version_string}' appears to have "
        f"the following dependencies: {', '.join(str(d) for d in dependencies)}. "
        f"For more information please see {DEPENDENCIES_DOCUMENTATION_URL}",
        package_id=artifact.identity_id,
        version=artifact.version_string,
        dependencies=[str(d) for d in dependencies],
    )
    return True
