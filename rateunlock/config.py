"""
Application configuration using pydantic-settings.
All config is validated at startup - fail fast if anything is missing.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_base_url: str = "http://localhost:8000"
    log_level: str = "INFO"
    allowed_origins: str = ""  # Comma-separated CORS origins

    # Database
    database_url: str
    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Redis (rate limiting, alert cooldowns, worker heartbeats)
    redis_url: str = "redis://localhost:6379/0"

    # Sentry
    sentry_dsn: str = ""

    # Lead routing
    partner_payout_share: float = 0.5
    routing_candidate_limit: int = 10

    # Lender webhook delivery
    webhook_timeout_seconds: float = 5.0
    webhook_max_attempts: int = 5
    webhook_signing_key: str = ""
    webhook_inline_delivery: bool = True

    # Abuse protection
    lead_rate_limit_per_minute: int = 20

    # Alerting
    alert_webhook_url: str = ""  # Discord/Slack webhook URL for critical alerts

    @property
    def cors_origins(self) -> list[str]:
        origins = [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        if self.app_env == "development":
            origins.extend(["http://localhost:3000", "http://localhost:5173"])
        origins.append(self.app_base_url)
        return origins


@lru_cache()
def get_settings() -> Settings:
    return Settings()
