import os
from pathlib import Path


# ---------------------------------------------------------------------
# Base directories
# ---------------------------------------------------------------------

def get_default_home_dir() -> Path:
    """
    Returns the conventional agent home directory. The CLI does not fall
    back to it; doctor suggests it when PKGCACHE_HOME is not set.

    - Windows: %APPDATA%\\pkgcache
    - Linux/macOS: ~/.pkgcache
    """
    if os.name == "nt":  # Windows
        base = os.environ.get("APPDATA", str(Path.home()))
        return Path(base) / "pkgcache"
    return Path.home() / ".pkgcache"


def get_log_file(home_dir: Path) -> Path:
    """
    JSON log file for CLI invocations.
    """
    return Path(home_dir) / "logs" / "pkgcache.log.json"


# ---------------------------------------------------------------------
# Debug
# ---------------------------------------------------------------------

if __name__ == "__main__":
    print("Default Home Dir:", get_default_home_dir())
    print("Log File:", get_log_file(get_default_home_dir()))
