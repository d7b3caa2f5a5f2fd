"""Configuration management for the PayPal Payment Orchestrator."""

from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PayPalSettings(BaseSettings):
    """PayPal credentials and platform-wide partner settings.

    The credential fields describe the default tenant, used when no
    per-tenant configuration store is attached (single-merchant installs
    and local development).
    """

    client_id: str = Field(default="", description="PayPal REST client id")
    client_secret: str = Field(default="", description="PayPal REST client secret")
    environment: str = Field(default="SANDBOX", description="SANDBOX or LIVE")
    merchant_id: str | None = Field(default=None, description="Connected merchant payer id")
    merchant_email: str | None = Field(default=None, description="Connected merchant email")
    webhook_id: str | None = Field(default=None, description="Registered webhook id")
    partner_fee_percent: Decimal | None = Field(
        default=None, description="Platform fee percentage taken on each order"
    )
    soft_descriptor: str | None = Field(default=None, description="Card statement descriptor")
    service_auth_secret: str | None = Field(
        default=None, description="Shared secret the platform sends in X-Service-Auth on order calls"
    )

    # Partner (platform) settings
    partner_merchant_id: str | None = Field(
        default=None, description="Partner merchant id receiving platform fees"
    )
    bn_code: str | None = Field(
        default=None, description="Partner attribution (BN) code"
    )
    brand_name: str | None = Field(default=None, description="Brand shown on PayPal pages")
    callback_base_url: str | None = Field(
        default=None, description="Public base URL for order-update callbacks"
    )

    # Transport
    timeout_seconds: float = Field(default=10.0, description="Request timeout")
    retry_backoff_seconds: float = Field(
        default=0.25, description="Backoff before the single transient retry"
    )
    token_refresh_margin_seconds: int = Field(
        default=60, description="Refresh access tokens this long before expiry"
    )

    model_config = SettingsConfigDict(env_prefix="PAYPAL_")


class RateLimitSettings(BaseSettings):
    """Fixed-window rate limits per entry point."""

    window_seconds: int = Field(default=60, description="Window length")
    webhook_max_requests: int = Field(default=100, description="Webhook requests per window")
    api_max_requests: int = Field(default=60, description="API requests per window")
    auth_max_requests: int = Field(default=10, description="Token requests per window")
    sweep_interval_seconds: int = Field(
        default=300, description="Interval between stale-key sweeps"
    )

    model_config = SettingsConfigDict(env_prefix="RATE_LIMIT_")


class WebhookSettings(BaseSettings):
    """Inbound webhook settings."""

    replay_ttl_seconds: int = Field(
        default=7 * 24 * 60 * 60, description="How long transmission ids are remembered"
    )

    model_config = SettingsConfigDict(env_prefix="WEBHOOK_")


class PlatformSettings(BaseSettings):
    """Merchant platform API client settings."""

    timeout_seconds: float = Field(default=5.0, description="Request timeout")

    model_config = SettingsConfigDict(env_prefix="PLATFORM_")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    service_name: str = Field(default="paypal-orchestrator", description="Service name")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")
    log_json: bool = Field(default=True, description="Render logs as JSON")

    # Database (in-memory stores are used when unset)
    database_url: str | None = Field(default=None, description="PostgreSQL connection string")
    database_pool_min_size: int = Field(default=2, description="Minimum pool connections")
    database_pool_max_size: int = Field(default=10, description="Maximum pool connections")

    paypal: PayPalSettings = Field(default_factory=PayPalSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)
    platform: PlatformSettings = Field(default_factory=PlatformSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )


# Global settings instance
settings = Settings()
