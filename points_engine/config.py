"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings

_PLACEHOLDER_URLS = {"", "https://placeholder.supabase.co"}
_PLACEHOLDER_KEYS = {"", "placeholder-key"}


class Settings(BaseSettings):
    """Application configuration.

    Values are read from environment variables (or a `.env` file). Leaving the
    Supabase values empty runs the engine in limited mode: quota reads fall
    back to local state and every ledger write is rejected.
    """

    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_key: str = ""
    # HS256 secret for verifying access tokens locally when the auth API is unreachable
    supabase_jwt_secret: str = ""
    # Page size for full-table reads; must not exceed the project's db-max-rows
    supabase_max_rows: int = 1000
    supabase_http_max_connections: int = 100
    supabase_http_max_keepalive_connections: int = 50
    remote_timeout_seconds: float = 5.0

    # App
    app_name: str = "Points Economy API"
    app_version: str = "1.0.0"
    environment: str = "development"
    log_level: str = "INFO"
    allowed_origins: str = "http://localhost:5173"
    enable_scheduler: bool = True
    admin_emails: str = ""

    # Calendar day boundary for quotas
    timezone: str = "UTC"

    # Economy rules
    daily_allowance: int = 3
    signup_bonus_points: int = 100
    redemption_code_validity_days: int = 30
    history_page_size: int = 10
    big_win_feed_size: int = 5

    # Telegram membership verification for the join task
    telegram_bot_token: str = ""
    telegram_channel_id: str = "@SKModTechOfficial"

    # Local fallback state
    local_state_path: str = ".points_engine/local_state.json"
    local_state_retention_days: int = 7

    # Performance tuning
    auth_token_cache_ttl_seconds: int = 15
    auth_token_cache_max_entries: int = 1024
    slow_request_log_threshold_ms: int = 0
    slow_query_log_threshold_ms: int = 0

    @property
    def is_production(self) -> bool:
        """Return True when running in production."""
        return self.environment == "production"

    @property
    def is_supabase_configured(self) -> bool:
        """Return True when a real Supabase project is configured."""
        return (
            self.supabase_url not in _PLACEHOLDER_URLS
            and self.supabase_anon_key not in _PLACEHOLDER_KEYS
            and self.supabase_service_key not in _PLACEHOLDER_KEYS
        )

    @property
    def origins_list(self) -> list[str]:
        """Parse comma-separated ALLOWED_ORIGINS into a list."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def admin_email_set(self) -> set[str]:
        """Parse comma-separated ADMIN_EMAILS into a normalized set."""
        return {e.strip().lower() for e in self.admin_emails.split(",") if e.strip()}

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
