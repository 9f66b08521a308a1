"""
Coffee Sales Analytics
Centralized Configuration Management

Layered Pydantic settings with environment variable and .env support.
Each subsystem reads its own prefixed variables.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from coffee_sales.exceptions import ConfigError


class DatabaseSettings(BaseSettings):
    """Relational store configuration"""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    url: str = Field(default="sqlite:///./data/coffee_sales.db", description="SQLAlchemy database URL")
    echo: bool = Field(default=False, description="Echo SQL queries")

    @property
    def is_sqlite(self) -> bool:
        """Whether the configured backend is SQLite"""
        return self.url.startswith("sqlite")

    @property
    def is_in_memory(self) -> bool:
        """Whether the configured backend is an in-memory SQLite database"""
        return self.is_sqlite and (":memory:" in self.url or self.url.rstrip("/") == "sqlite:")


class IngestionSettings(BaseSettings):
    """Bulk load source configuration"""

    model_config = SettingsConfigDict(env_prefix="INGESTION_")

    source_dir: str = Field(default="./data/raw", description="Directory holding the source CSV files")
    customers_file: str = Field(default="customers.csv", description="Customers source file name")
    orders_file: str = Field(default="orders.csv", description="Orders source file name")
    products_file: str = Field(default="products.csv", description="Products source file name")
    date_format: str = Field(default="%Y-%m-%d", description="Order date format in the orders file")
    delimiter: str = Field(default=",", description="CSV delimiter")

    @property
    def customers_path(self) -> Path:
        return Path(self.source_dir) / self.customers_file

    @property
    def orders_path(self) -> Path:
        return Path(self.source_dir) / self.orders_file

    @property
    def products_path(self) -> Path:
        return Path(self.source_dir) / self.products_file


class ReportingSettings(BaseSettings):
    """Reporting and metrics configuration"""

    model_config = SettingsConfigDict(env_prefix="REPORTING_")

    default_country: str = Field(default="United States", description="Country used by the scheduled report")
    high_sales_threshold: float = Field(default=1260.0, description="Monthly sales at or above this are 'High'")
    moderate_sales_threshold: float = Field(default=720.0, description="Monthly sales at or above this are 'Moderate'")
    output_dir: str = Field(default="./data/reports", description="Directory for scheduled report exports")

    @model_validator(mode="after")
    def validate_thresholds(self) -> "ReportingSettings":
        """Thresholds must be ordered"""
        if self.moderate_sales_threshold > self.high_sales_threshold:
            raise ValueError("moderate_sales_threshold must not exceed high_sales_threshold")
        return self


class MonitoringSettings(BaseSettings):
    """Logging configuration"""

    model_config = SettingsConfigDict(env_prefix="", populate_by_name=True)

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="coffee-sales-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=8000, alias="API_PORT", description="API port")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    reporting: ReportingSettings = Field(default_factory=ReportingSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance

    Raises:
        ConfigError: If the environment holds invalid values
    """
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
