from __future__ import annotations

import logging

from betquiz_app.utils.logging_config import configure_logging
from betquiz_app.utils.settings import get_settings


def test_defaults(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("BETQUIZ_HOST", "BETQUIZ_PORT", "BETQUIZ_LOG_LEVEL", "BETQUIZ_DATABASE_URL", "BETQUIZ_CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.host == "0.0.0.0"
    assert settings.port == 3001
    assert settings.log_level == "INFO"
    assert settings.database_url is None
    assert settings.cors_origins == ["*"]


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BETQUIZ_PORT", "4000")
    monkeypatch.setenv("BETQUIZ_DATABASE_URL", "sqlite:///bank.db")
    monkeypatch.setenv("BETQUIZ_CORS_ORIGINS", '["http://localhost:5173"]')

    settings = get_settings()

    assert settings.port == 4000
    assert settings.database_url == "sqlite:///bank.db"
    assert settings.cors_origins == ["http://localhost:5173"]


def test_configure_logging_returns_package_logger():
    logger = configure_logging("DEBUG")
    assert logger.name == "betquiz_app"
    assert isinstance(logger, logging.Logger)
