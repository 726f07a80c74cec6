import pytest
from pydantic import ValidationError

from backoffice.config import Settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "DATABASE_URL", "GEMINI_API_KEY", "GEMINI_MODEL", "STORAGE_BACKEND", "LOG_LEVEL",
        "AI_INVOICE_TIMEOUT", "AI_RECEIPT_TIMEOUT", "CORS_ORIGINS", "TIMESHEET_STALE_HOURS",
        "DO_SPACES_REGION",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = Settings(_env_file=None)

    assert settings.database_url == "sqlite+aiosqlite:///./backoffice.db"
    assert settings.gemini_api_key is None
    assert settings.ai_invoice_timeout == 90
    assert settings.ai_receipt_timeout == 60
    assert settings.storage_backend == "local"
    assert settings.cors_origins == ["http://localhost:5173"]
    assert settings.timesheet_stale_hours == 16


def test_environment_values_are_coerced(clean_env):
    clean_env.setenv("SQL_ECHO", "yes")
    clean_env.setenv("LOG_LEVEL", "debug")
    clean_env.setenv("GEMINI_API_KEY", "  ")
    clean_env.setenv("AI_RECEIPT_TIMEOUT", "45.5")
    clean_env.setenv("STORAGE_BACKEND", "Spaces")
    clean_env.setenv("DO_SPACES_BUCKET", "invoices")
    clean_env.setenv("DO_SPACES_PREFIX", "/staging/")
    clean_env.setenv("CORS_ORIGINS", "https://a.example, https://b.example,")
    clean_env.setenv("TIMESHEET_STALE_HOURS", "12")

    settings = Settings(_env_file=None)

    assert settings.sql_echo is True
    assert settings.log_level == "DEBUG"
    assert settings.gemini_api_key is None
    assert settings.ai_receipt_timeout == 45.5
    assert settings.storage_backend == "spaces"
    assert settings.spaces_bucket == "invoices"
    assert settings.spaces_prefix == "staging"
    assert settings.cors_origins == ["https://a.example", "https://b.example"]
    assert settings.timesheet_stale_hours == 12


def test_env_file_is_read(clean_env, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("GEMINI_MODEL=gemini-test\nDO_SPACES_REGION=sfo3\n", encoding="utf-8")

    settings = Settings(_env_file=str(env_file))

    assert settings.gemini_model == "gemini-test"
    assert settings.spaces_region == "sfo3"


@pytest.mark.parametrize("name, value", [
    ("STORAGE_BACKEND", "ftp"),
    ("AI_INVOICE_TIMEOUT", "0"),
    ("SQL_ECHO", "sometimes"),
])
def test_bad_values_fail_fast(clean_env, name, value):
    clean_env.setenv(name, value)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_settings_are_immutable(clean_env):
    settings = Settings(_env_file=None)
    with pytest.raises(ValidationError):
        settings.gemini_model = "other"
