import json
from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table

from pkgcache.cli.core import console, fail, get_settings
from pkgcache.factory import AcquisitionServiceFactory
from pkgcache.internal.constants import DEFAULT_DOWNLOAD_ATTEMPT_BACKOFF_SECONDS, DEFAULT_MAX_DOWNLOAD_ATTEMPTS
from pkgcache.internal.logging import get_logger
from pkgcache.kernel.artifacts import FeedReference, PackageIdentity, RetryBudget
from pkgcache.kernel.errors import AcquisitionError

logger = get_logger(__name__)


def acquire(
    ctx: typer.Context,
    package_id: str = typer.Argument(..., help="Package id."),
    version: str = typer.Argument(..., help="Exact package version."),
    feed_uri: str = typer.Option(..., "--feed-uri", help="Feed URL (V2 root, V3 index.json) or local folder."),
    feed_id: Optional[str] = typer.Option(None, "--feed-id", help="Namespaces the cache for this feed."),
    username: Optional[str] = typer.Option(None, "--username", help="Feed username."),
    password: Optional[str] = typer.Option(None, "--password", envvar="PKGCACHE_FEED_PASSWORD", help="Feed password."),
    force: bool = typer.Option(False, "--force", help="Download even if the package is already cached."),
    max_attempts: int = typer.Option(DEFAULT_MAX_DOWNLOAD_ATTEMPTS, "--max-attempts", min=1),
    backoff: float = typer.Option(DEFAULT_DOWNLOAD_ATTEMPT_BACKOFF_SECONDS, "--backoff", min=0.0, help="Seconds between attempts."),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
):
    """
    Make a package available in the local cache and report its path, hash and size.
    """
    settings = get_settings(ctx)

    try:
        identity = PackageIdentity(package_id, version)
    except ValueError as exc:
        console.print(f"[red]Invalid package identity:[/red] {escape(str(exc))}")
        raise typer.Exit(2)

    credentials = (username, password or "") if username else None
    feed = FeedReference(feed_uri=feed_uri, feed_id=feed_id, credentials=credentials)

    try:
        service = AcquisitionServiceFactory.create(settings)
        result = service.acquire(
            identity,
            feed,
            force_download=force,
            retry_budget=RetryBudget(max_attempts=max_attempts, backoff_seconds=backoff),
        )
    except AcquisitionError as exc:
        logger.error("Package acquisition failed", package_id=package_id, version=version, error=str(exc))
        fail("Acquisition failed:", exc)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return

    table = Table(title=f"{identity.id} {identity.version}")
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", overflow="fold")
    table.add_row("Path", str(result.local_path))
    table.add_row(f"Hash ({settings.hash_algorithm})", result.content_hash)
    table.add_row("Size", f"{result.size_bytes} bytes")
    console.print(table)
