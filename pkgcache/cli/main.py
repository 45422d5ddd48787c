import os
from pathlib import Path
from typing import Optional

import typer

from pkgcache.cli.commands import (
    acquire,
    find,
    list_packages,
    doctor,
    version,
)
from pkgcache.cli.core import fail
from pkgcache.internal import paths
from pkgcache.internal.config import CacheSettings
from pkgcache.internal.constants import ENV_HOME
from pkgcache.internal.logging import setup_logging
from pkgcache.kernel.errors import ConfigurationError

app = typer.Typer(
    name="pkgcache",
    help="Acquire deployment packages from NuGet feeds through a local cache.",
    no_args_is_help=True
)


@app.callback()
def main(
    ctx: typer.Context,
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level for console and log file."),
    cache_home: Optional[Path] = typer.Option(
        None, "--cache-home", envvar=ENV_HOME, help="Agent home directory; the cache lives under its Files folder."
    ),
):
    log_file = paths.get_log_file(cache_home) if cache_home else None
    setup_logging(log_level_name=log_level, log_file_path=log_file, console_output=True)

    environ = dict(os.environ)
    if cache_home:
        environ[ENV_HOME] = str(cache_home)
    try:
        settings = CacheSettings.from_env(environ)
    except ConfigurationError as exc:
        fail("Invalid configuration:", exc)
    ctx.obj = {"settings": settings}


app.command("acquire")(acquire.acquire)
app.command("find")(find.find)
app.command("list")(list_packages.list_packages)
app.command("doctor")(doctor.doctor)
app.command("version")(version.version)

if __name__ == "__main__":
    app()
