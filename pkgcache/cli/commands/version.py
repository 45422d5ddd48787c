import typer
import importlib.metadata
from pkgcache.internal.logging import get_logger

logger = get_logger(__name__)

def version():
    """
    Show the pkgcache version.
    """
    try:
        # Read version from installed package metadata
        package_version = importlib.metadata.version("pkgcache")
        typer.echo(f"pkgcache version: {package_version}")
    except importlib.metadata.PackageNotFoundError:
        typer.echo("pkgcache is not installed or version metadata not found.")
        typer.echo("Please install the package first (e.g., pip install . or pip install -e .)")
        logger.warning("pkgcache package version not found.")
        raise typer.Exit(1)

if __name__ == "__main__":
    typer.run(version)
