import logging

import orjson

from waymag.core.log_setup import SpamFilter, get_log_file_path, setup_logging


def record(message):
    return logging.LogRecord("waymag", logging.INFO, __file__, 1, message, None, None)


def test_log_path_follows_state_home(monkeypatch, tmp_path):
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path))
    assert get_log_file_path() == str(tmp_path / "waymag" / "waymag.log")


def test_spam_filter_keeps_first_reload_message_only():
    spam = SpamFilter()
    SpamFilter._config_reload_count = 0
    assert spam.filter(record("Configuration reloaded from file."))
    assert not spam.filter(record("Configuration reloaded from file."))
    assert not spam.filter(record("Configuration file modified. Reloading..."))
    assert spam.filter(record("Magnifier helper exited with status 0"))
    assert spam.filter(record("Configuration reloaded from file."))


def test_file_log_is_json(tmp_path):
    log_file = tmp_path / "state" / "waymag.log"
    logger = setup_logging(level=logging.INFO, log_file_path=str(log_file))
    logger.info("Magnifier helper started", pid=42)
    logger.debug("not written at INFO")
    for handler in logging.getLogger().handlers:
        handler.flush()
    lines = log_file.read_text().splitlines()
    entry = orjson.loads(lines[-1])
    assert entry["event"] == "Magnifier helper started"
    assert entry["pid"] == 42
    assert entry["level"] == "info"
    assert not any("not written" in line for line in lines)
