import logging

import pytest
import structlog

from pkgcache.internal import logging as pkgcache_logging
from pkgcache.internal.config import CacheSettings


@pytest.fixture(autouse=True)
def reset_logging(monkeypatch):
    """Keep structlog and stdlib logging state isolated between tests."""
    monkeypatch.setattr(pkgcache_logging, "_LOGGING_CONFIGURED", False)
    monkeypatch.delenv("PKGCACHE_LOG_LEVEL", raising=False)
    yield
    structlog.reset_defaults()
    for handler in logging.root.handlers[:]:
        handler.close()
        logging.root.removeHandler(handler)


@pytest.fixture
def cache_home(tmp_path):
    home = tmp_path / "agent-home"
    home.mkdir()
    return home


@pytest.fixture
def settings(cache_home):
    return CacheSettings(home_dir=cache_home, skip_free_space_check=True)


@pytest.fixture
def cache_root(settings):
    return settings.files_dir
