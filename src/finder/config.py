"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class MarketplaceSettings(BaseSettings):
    """eBay Finding API connection settings."""

    model_config = SettingsConfigDict(env_prefix="EBAY_")

    app_id: SecretStr = SecretStr("")
    endpoint: str = "https://svcs.ebay.com/services/search/FindingService/v1"
    entries_per_page: int = 10
    timeout_seconds: float = 10.0
    user_agent: str = "ProductFinderBot/1.0"


class RateLimitSettings(BaseSettings):
    """Outbound call throttling for the marketplace API."""

    model_config = SettingsConfigDict(env_prefix="RATE_LIMIT_")

    min_interval_seconds: float = 3.0  # spacing between granted calls
    max_calls_per_hour: int = 80
    max_calls_per_day: int = 4000


class CacheSettings(BaseSettings):
    """Response cache, price history and snapshot persistence."""

    model_config = SettingsConfigDict(env_prefix="CACHE_")

    ttl_hours: float = 24.0
    history_retention_days: int = 90
    trend_window_days: int = 30
    db_path: str = "data/finder.db"


class ScanSettings(BaseSettings):
    """Scan cycle behavior: category selection, thresholds and feature flags."""

    model_config = SettingsConfigDict(env_prefix="SCAN_")

    max_categories: int = 5
    recency_hours: float = 12.0  # category cooldown between scans
    min_profit: Decimal = Decimal("5.00")
    min_margin: Decimal = Decimal("20")  # percent
    include_all_findings: bool = True  # False = report only threshold-meeting findings

    price_history_enabled: bool = True
    category_scanning_enabled: bool = True
    enrich_demand: bool = False
    cost_seed: int | None = None  # fixed seed makes supplier estimates reproducible

    schedule_enabled: bool = False
    interval_seconds: int = 3600  # seconds between scheduled cycles


class FeeSettings(BaseSettings):
    """Marketplace selling costs (eBay final value + payment processing)."""

    model_config = SettingsConfigDict(env_prefix="FEES_")

    marketplace_fee_rate: Decimal = Decimal("0.1325")  # 13.25%
    payment_fee_rate: Decimal = Decimal("0.0349")  # 3.49%
    shipping_cost: Decimal = Decimal("3.00")


class AlertSettings(BaseSettings):
    """Standout-finding alerts. SMTP is used only when smtp_host is set."""

    model_config = SettingsConfigDict(env_prefix="ALERT_")

    min_profit: Decimal = Decimal("20")
    min_margin: Decimal = Decimal("40")
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: SecretStr = SecretStr("")
    from_email: str = ""
    to_email: str = ""
    timeout_seconds: float = 30.0


class ApiSettings(BaseSettings):
    """HTTP API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 3001
    enabled: bool = True


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    marketplace: MarketplaceSettings = MarketplaceSettings()
    rate_limit: RateLimitSettings = RateLimitSettings()
    cache: CacheSettings = CacheSettings()
    scan: ScanSettings = ScanSettings()
    fees: FeeSettings = FeeSettings()
    alerts: AlertSettings = AlertSettings()
    api: ApiSettings = ApiSettings()
