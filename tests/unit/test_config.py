"""
Unit Tests - Configuration
"""
import pytest

from coffee_sales.config.settings import DatabaseSettings, Settings, get_settings
from coffee_sales.database.connection import create_database
from coffee_sales.exceptions import ConfigError


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults(monkeypatch):
    monkeypatch.delenv("APP_ENV", raising=False)
    monkeypatch.delenv("REPORTING_DEFAULT_COUNTRY", raising=False)

    settings = Settings(_env_file=None)

    assert settings.app_env == "development"
    assert settings.reporting.default_country == "United States"
    assert settings.reporting.high_sales_threshold == 1260.0
    assert settings.reporting.moderate_sales_threshold == 720.0
    assert settings.ingestion.customers_path.name == "customers.csv"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("APP_ENV", "Production")
    monkeypatch.setenv("REPORTING_DEFAULT_COUNTRY", "Ireland")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")

    settings = get_settings()

    assert settings.is_production
    assert settings.reporting.default_country == "Ireland"
    assert settings.database.is_in_memory


def test_invalid_environment_raises_config_error(monkeypatch):
    monkeypatch.setenv("APP_ENV", "moon")

    with pytest.raises(ConfigError):
        get_settings()


def test_inverted_thresholds_raise_config_error(monkeypatch):
    monkeypatch.setenv("REPORTING_HIGH_SALES_THRESHOLD", "100")
    monkeypatch.setenv("REPORTING_MODERATE_SALES_THRESHOLD", "500")

    with pytest.raises(ConfigError):
        get_settings()


def test_file_database_creates_directory(tmp_path):
    url = f"sqlite:///{tmp_path / 'nested' / 'coffee.db'}"

    db = create_database(DatabaseSettings(url=url))
    try:
        assert (tmp_path / "nested").is_dir()
        assert db.check_health()["status"] == "healthy"
    finally:
        db.dispose()
