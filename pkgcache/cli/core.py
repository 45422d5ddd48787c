"""
Shared helpers for CLI commands, decoupled from individual commands.
"""
import typer
from rich.console import Console
from rich.markup import escape

from pkgcache.internal.config import CacheSettings
from pkgcache.kernel.errors import AcquisitionError

console = Console()


def get_settings(ctx: typer.Context) -> CacheSettings:
    settings = (ctx.obj or {}).get("settings")
    if settings is None:
        settings = CacheSettings.from_env()
    return settings


def fail(message: str, error: AcquisitionError | None = None) -> None:
    if error is not None:
        message = f"{message} {error}"
    console.print(f"[red]{escape(message)}[/red]", highlight=False)
    raise typer.Exit(1)
