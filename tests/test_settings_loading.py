"""
Test settings loading from the environment.

Every field is read from its OPFLOW_* alias and typed by pydantic.
"""
from __future__ import annotations

import pytest
from pydantic import ValidationError as SettingsValidationError

from core.settings import get_app_settings
from core.settings.modules.app_settings import AppSettings
from core.settings.modules.channels_settings import PdfSettings, SmtpSettings
from core.settings.modules.database_settings import DatabaseSettings
from core.settings.modules.engine_settings import EngineSettings


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Run from an empty directory so a developer .env cannot leak in."""
    monkeypatch.chdir(tmp_path)
    get_app_settings.cache_clear()
    yield
    get_app_settings.cache_clear()


def test_defaults():
    settings = get_app_settings()
    assert isinstance(settings, AppSettings)
    assert settings.database.url == "sqlite+aiosqlite:///./opflow.db"
    assert settings.engine.max_attempts == 3
    assert settings.engine.backoff_seconds == 1.0
    assert settings.engine.max_backoff_seconds == 60.0
    assert not settings.channels.smtp.enabled
    assert settings.channels.pdf.browser_path == "chromium"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("OPFLOW_DB_URL", "sqlite+aiosqlite:////tmp/other.db")
    monkeypatch.setenv("OPFLOW_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("OPFLOW_BACKOFF_SECONDS", "0.25")
    monkeypatch.setenv("OPFLOW_SMTP_ENABLED", "true")
    monkeypatch.setenv("OPFLOW_SMTP_PORT", "2525")
    monkeypatch.setenv("OPFLOW_PDF_OUTPUT_DIR", "/srv/pdf")

    settings = get_app_settings()

    assert settings.database.url == "sqlite+aiosqlite:////tmp/other.db"
    assert settings.engine.max_attempts == 5
    assert settings.engine.backoff_seconds == 0.25
    assert settings.channels.smtp.enabled is True
    assert settings.channels.smtp.port == 2525
    assert settings.channels.pdf.output_dir == "/srv/pdf"


def test_dotenv_file_is_read(tmp_path):
    (tmp_path / ".env").write_text("OPFLOW_WORKER_CONCURRENCY=3\nOPFLOW_SMTP_HOST=mail.internal\n")
    assert EngineSettings().worker_concurrency == 3
    assert SmtpSettings().host == "mail.internal"


def test_settings_cached():
    assert get_app_settings() is get_app_settings()


def test_invalid_values_rejected(monkeypatch):
    monkeypatch.setenv("OPFLOW_MAX_ATTEMPTS", "0")
    with pytest.raises(SettingsValidationError):
        EngineSettings()


def test_backoff_cap_must_cover_base_delay():
    with pytest.raises(SettingsValidationError):
        EngineSettings(backoff_seconds=10.0, max_backoff_seconds=1.0)


def test_field_names_accepted():
    assert DatabaseSettings(url="sqlite+aiosqlite:///x.db").url == "sqlite+aiosqlite:///x.db"
    assert PdfSettings(default_width=5.0).default_width == 5.0
