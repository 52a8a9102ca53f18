"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Workstation configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Durable client storage (session snapshot + persistent cache entries)
    database_url: str = "sqlite:///./cambio_workstation.db"
    session_storage_key: str = "active_teller_window"
    cache_key_prefix: str = "cache_"

    # External back-office API
    backoffice_api_base: str = "http://localhost:3000/api"
    backoffice_api_token: str | None = None

    # Service
    service_name: str = "cambio-gateway"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 5.0

    # Cache TTLs per domain (milliseconds)
    cache_rates_ttl_ms: int = 30_000  # volatile: rates change during the day
    cache_currencies_ttl_ms: int = 300_000  # near-static currency list
    cache_cleanup_interval_ms: int = 60_000

    # Debounce / throttle (milliseconds)
    debounce_search_ms: int = 300
    debounce_validation_ms: int = 500
    throttle_scroll_ms: int = 100
    throttle_rates_refresh_ms: int = 2_000

    # Pause counter tick
    pause_tick_ms: int = 1_000


settings = Settings()
