from decimal import Decimal
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    """Application configuration using Pydantic BaseSettings.

    Loads configuration from environment variables and .env file (if present).
    Fields are type-checked and validated. Defaults are provided where appropriate.
    """
    # Application
    app_env: str = "local"
    log_level: str = "DEBUG"

    # Collaborators (chosen once at startup)
    persistence_backend: Literal["memory", "csv"] = "memory"
    payment_backend: Literal["sandbox"] = "sandbox"
    sandbox_token_prefix: str = "TEST_"

    # Data paths
    data_dir: str = "sample_data"

    # Pricing
    tax_rate: Decimal = Decimal("0.08")
    free_delivery_threshold: Decimal = Decimal("20.00")
    standard_delivery_fee: Decimal = Decimal("2.99")
    max_item_quantity: int = 99
    price_tolerance: Decimal = Decimal("0.01")

    # Promo codes
    promo_failure_policy: Literal["abort", "ignore"] = "abort"
    promo_usage_accounting: Literal["on_validate", "on_order"] = "on_validate"

    # Staff console
    kitchen_refresh_seconds: int = 5
    top_items_limit: int = 5

    # Seed data settings
    default_seed_orders: int = 200
    default_seed_days: int = 14
    default_seed_value: int = 42

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

_config: Optional[AppConfig] = None

def get_config() -> AppConfig:
    """Return the AppConfig instance (singleton pattern)."""
    global _config
    if _config is None:
        _config = AppConfig()
    return _config

def set_config_for_test(**kwargs):
    """For testing only: override the AppConfig instance with new values."""
    global _config
    _config = AppConfig(**kwargs)
