from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table

from pkgcache.adapters.storage_fs import CacheLocator, CacheScanner
from pkgcache.cli.core import console, fail, get_settings
from pkgcache.kernel.errors import AcquisitionError


def list_packages(
    ctx: typer.Context,
    feed_id: Optional[str] = typer.Option(None, "--feed-id", help="Only list packages cached for this feed."),
):
    """
    List the valid packages in the local cache.
    """
    try:
        locator = CacheLocator(get_settings(ctx))
    except AcquisitionError as exc:
        fail("Cache is not configured:", exc)

    root = locator.root(feed_id)
    entries = sorted(CacheScanner().list_entries(root), key=lambda e: (e.identity.id.lower(), str(e.file_path)))
    if not entries:
        console.print(f"[yellow]No packages cached under {escape(str(root))}.[/yellow]", highlight=False)
        return

    table = Table(title="Cached Packages")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Version", style="green")
    table.add_column("Size", justify="right")
    table.add_column("File", overflow="fold")
    for entry in entries:
        table.add_row(
            entry.identity.id,
            str(entry.identity.version),
            f"{entry.file_path.stat().st_size}",
            entry.file_path.name,
        )
    console.print(table)
