import json
import logging

import pytest

from pkgcache.internal import logging as pkgcache_logging
from pkgcache.internal.logging import setup_logging, get_logger

# --- Fixtures ---

@pytest.fixture
def json_log_file(tmp_path):
    """Configures JSON file logging into tmp_path and returns the file path."""
    def _setup(log_level="DEBUG"):
        log_file = tmp_path / "logs" / "test_log.json"
        setup_logging(log_level_name=log_level, log_file_path=log_file, console_output=False)
        return log_file
    return _setup


def _read_entries(log_file):
    for handler in logging.root.handlers:
        handler.flush()
    with open(log_file, "r") as f:
        return [json.loads(line) for line in f if line.strip()]

# --- Tests ---

def test_logging_is_structured_json(json_log_file):
    """Verify that logs are emitted in a structured JSON format to file."""
    log_file = json_log_file("INFO")
    logger = get_logger("test.module")

    logger.info("Package was found in cache", path="/cache/Acme.1.0.0_X.nupkg", size_bytes=123)

    entry = _read_entries(log_file)[0]
    assert entry["event"] == "Package was found in cache"
    assert entry["path"] == "/cache/Acme.1.0.0_X.nupkg"
    assert entry["size_bytes"] == 123
    assert "timestamp" in entry
    assert entry["level"] == "info"
    assert entry["logger"] == "test.module"


def test_logging_level_filtering(json_log_file):
    """Test that logs are filtered by level correctly."""
    log_file = json_log_file("INFO")
    logger = get_logger("filter.test")

    logger.debug("Debug message - should not appear")
    logger.info("Info message - should appear")
    logger.warning("Warning message - should appear")

    events = [e["event"] for e in _read_entries(log_file)]
    assert "Debug message - should not appear" not in events
    assert "Info message - should appear" in events
    assert "Warning message - should appear" in events


def test_log_level_environment_variable_wins(json_log_file, monkeypatch):
    monkeypatch.setenv("PKGCACHE_LOG_LEVEL", "error")
    log_file = json_log_file("DEBUG")
    logger = get_logger("env.test")

    logger.warning("Not logged")
    logger.error("Logged")

    assert [e["event"] for e in _read_entries(log_file)] == ["Logged"]


def test_logging_console_output_goes_to_stderr(capsys):
    setup_logging(log_level_name="INFO", log_file_path=None, console_output=True)
    logger = get_logger("console.test")

    logger.info("Hello console!")

    captured = capsys.readouterr()
    assert "Hello console!" in captured.err
    assert "Hello console!" not in captured.out


def test_logging_no_handlers_configured_sends_to_null(capsys):
    setup_logging(log_level_name="INFO", log_file_path=None, console_output=False)
    get_logger("null.test").info("This should not be seen.")

    captured = capsys.readouterr()
    assert "This should not be seen." not in captured.out
    assert "This should not be seen." not in captured.err


def test_setup_logging_only_configures_once(tmp_path):
    setup_logging(log_level_name="INFO", log_file_path=None, console_output=False)
    assert pkgcache_logging._LOGGING_CONFIGURED is True

    second_file = tmp_path / "second.json"
    setup_logging(log_level_name="INFO", log_file_path=second_file, console_output=False)
    assert not second_file.exists()
