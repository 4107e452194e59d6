"""
Configuration settings for the CPQ Pricing Backend.

This module handles application configuration using Pydantic settings.
"""

from decimal import Decimal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # Application
    app_name: str = "CPQ Pricing Backend"
    api_version: str = "v1"
    debug: bool = False
    log_level: str = "INFO"

    # Quote Defaults
    default_tax_rate: Decimal = Decimal("0.05")  # 5% business tax
    default_currency: str = "TWD"
    default_quote_validity_days: int = 30
    quote_number_prefix: str = "Q"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CPQ_",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
