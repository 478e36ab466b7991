"""Application configuration from environment variables."""

from decimal import Decimal

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = ConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = Field(
        default="sqlite:///./rentbill.db",
        description="SQLAlchemy connection string",
    )
    database_echo: bool = Field(default=False, description="Log SQL queries")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/server.log", description="Server log file path")

    # Billing rules
    late_fee_per_day: Decimal = Field(
        default=Decimal("50"),
        ge=0,
        decimal_places=2,
        description="Late fee charged per day past the due date",
    )
    invoice_due_day: int = Field(
        default=5, ge=1, le=28, description="Day of the invoice month the invoice falls due"
    )

    # Presentation
    locale: str = Field(default="th_TH", description="Locale for amount formatting")
    timezone: str = Field(
        default="Asia/Bangkok", description="Business timezone deciding the current billing day"
    )

    # API
    api_title: str = Field(default="RentBill API", description="API title")
    api_version: str = Field(default="0.1.0", description="API version")


# Global settings instance
settings = Settings()
