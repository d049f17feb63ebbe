"""
Application configuration using pydantic-settings.
Only the database URL is mandatory - every integration degrades to
"not configured" when its keys are absent.
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_base_url: str = "http://localhost:3000"  # Public site URL (checkout redirects, portal links)
    app_secret_key: str = ""
    log_level: str = "INFO"
    allowed_origins: str = ""  # Comma-separated CORS origins

    # Database
    database_url: str
    database_pool_size: int = 10
    database_max_overflow: int = 5

    # Stripe
    stripe_secret_key: str = ""
    stripe_publishable_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_price_essential: str = ""
    stripe_price_essential_rush: str = ""
    stripe_price_pro: str = ""
    stripe_price_pro_rush: str = ""
    stripe_price_maintenance_monthly: str = ""
    stripe_price_maintenance_annual: str = ""
    stripe_price_google_business: str = ""
    stripe_price_accessibility: str = ""
    stripe_price_privacy: str = ""

    # SendGrid
    sendgrid_api_key: str = ""
    from_email: str = "noreply@dolobuilds.com"
    from_name: str = "Dolo"
    admin_email: str = "hello@dolobuilds.com"

    # Admin dashboard
    admin_jwt_secret: str = ""
    admin_jwt_expiry_hours: int = 12

    # Sentry
    sentry_dsn: str = ""

    # Webhook protection
    webhook_rate_limit_max: int = 100
    webhook_rate_limit_window_ms: int = 60000

    # Diagnostics
    error_monitor_capacity: int = 100

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
