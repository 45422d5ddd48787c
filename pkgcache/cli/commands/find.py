import json
from typing import Optional

import typer
from rich.markup import escape

from pkgcache.adapters.storage_fs import CacheLocator, CacheScanner
from pkgcache.cli.core import console, fail, get_settings
from pkgcache.kernel.artifacts import PackageIdentity
from pkgcache.kernel.errors import AcquisitionError


def find(
    ctx: typer.Context,
    package_id: str = typer.Argument(..., help="Package id."),
    version: str = typer.Argument(..., help="Exact package version."),
    feed_id: Optional[str] = typer.Option(None, "--feed-id"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
):
    """
    Look up a package in the local cache without downloading anything.
    """
    try:
        locator = CacheLocator(get_settings(ctx))
    except AcquisitionError as exc:
        fail("Cache is not configured:", exc)

    try:
        identity = PackageIdentity(package_id, version)
    except ValueError as exc:
        console.print(f"[red]Invalid package identity:[/red] {escape(str(exc))}")
        raise typer.Exit(2)

    cached = CacheScanner().find(locator.root(feed_id), identity)
    if cached is None:
        console.print(f"[yellow]{escape(str(identity))} is not in the cache.[/yellow]")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps({"local_path": str(cached.file_path)}))
    else:
        console.print(f"[green]{escape(str(identity))}[/green] {escape(str(cached.file_path))}", highlight=False)
