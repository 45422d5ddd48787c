import shutil
import sys
import tempfile

import typer

from pkgcache.adapters.storage_fs import CacheLocator, DiskSpaceGuard
from pkgcache.cli.core import get_settings
from pkgcache.internal import paths
from pkgcache.internal.constants import ENV_HOME
from pkgcache.internal.logging import get_logger
from pkgcache.kernel.errors import AcquisitionError

logger = get_logger(__name__)

def doctor(ctx: typer.Context):
    """
    Check the package cache configuration and the health of its directory.
    """
    typer.echo("Running pkgcache doctor checks...\n")
    settings = get_settings(ctx)
    all_passed = True

    def check(description: str, func):
        nonlocal all_passed
        typer.echo(f"- {description}...", nl=False)
        result, message = func()
        if result:
            typer.echo(f" {typer.style('PASSED', fg=typer.colors.GREEN)}")
        else:
            typer.echo(f" {typer.style('FAILED', fg=typer.colors.RED)}")
            typer.echo(f"  Reason: {message}")
            all_passed = False
        return result

    # --- System Checks ---
    typer.echo(typer.style("System Information:", fg=typer.colors.BLUE, bold=True))
    typer.echo(f"  Python Version: {sys.version.split()[0]}")
    typer.echo(f"  Hash Algorithm: {settings.hash_algorithm}")
    typer.echo("")

    # --- Configuration ---
    typer.echo(typer.style("Configuration:", fg=typer.colors.BLUE, bold=True))

    def check_home_configured():
        return settings.home_dir is not None, (
            f"Set {ENV_HOME} or pass --cache-home (for example {paths.get_default_home_dir()})."
        )
    if not check("Cache home directory configured", check_home_configured):
        typer.echo(typer.style("\nSome checks FAILED. Please review the output above.", fg=typer.colors.RED, bold=True))
        raise typer.Exit(1)

    root = CacheLocator(settings).base
    typer.echo(f"  Cache Root: {root}")
    typer.echo("")

    # --- Local Filesystem Checks ---
    typer.echo(typer.style("Local Filesystem Checks:", fg=typer.colors.BLUE, bold=True))

    def check_root_writable():
        try:
            root.mkdir(parents=True, exist_ok=True)
            with tempfile.TemporaryFile(dir=root):
                pass
        except OSError as e:
            return False, f"Cannot write to '{root}': {e}"
        return True, ""
    writable = check("Cache root is writable", check_root_writable)

    def check_free_space():
        try:
            DiskSpaceGuard(settings).ensure_free_space(root)
        except AcquisitionError as e:
            return False, str(e)
        free_gb = shutil.disk_usage(root).free / (1024**3)
        typer.echo(f" ({free_gb:.2f}GB free)", nl=False)
        return True, ""
    if writable:
        check("Enough free disk space", check_free_space)

    typer.echo("\n--- Doctor Check Summary ---")
    if all_passed:
        typer.echo(typer.style("All checks PASSED!", fg=typer.colors.GREEN, bold=True))
    else:
        typer.echo(typer.style("Some checks FAILED. Please review the output above.", fg=typer.colors.RED, bold=True))
        logger.warning("Doctor checks failed", root=str(root))
        raise typer.Exit(1)

if __name__ == "__main__":
    typer.run(doctor)
