"""Application configuration from environment variables."""

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = ConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = Field(
        default="sqlite:///./villa_billing.db",
        description="SQLAlchemy connection string",
    )
    database_echo: bool = Field(default=False, description="Log SQL queries")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/server.log", description="Server log file")

    # API
    api_title: str = Field(default="Villa Billing API", description="API title")
    api_version: str = Field(default="0.1.0", description="API version")

    # Invoices summary pagination
    default_page_size: int = Field(default=50, description="Default summary page size")
    max_page_size: int = Field(default=200, description="Largest allowed summary page size")


# Global settings instance
settings = Settings()
