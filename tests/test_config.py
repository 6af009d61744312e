from __future__ import annotations

import logging

import config


def test_configure_logging_adds_one_handler(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(config, "_configured", False)
    monkeypatch.setattr(root, "handlers", list(root.handlers))
    monkeypatch.setattr(root, "level", root.level)
    before = len(root.handlers)
    config.configure_logging("INFO")
    config.configure_logging("DEBUG")
    assert len(root.handlers) == before + 1
    assert root.level == logging.DEBUG


def test_settings_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("EKADASHI_DB_PATH", str(tmp_path / "x.db"))
    monkeypatch.setenv("EKADASHI_LOG_LEVEL", "debug")
    settings = config.get_settings()
    assert settings.db_path == tmp_path / "x.db"
    assert settings.log_level == "DEBUG"
