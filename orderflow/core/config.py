from pydantic_settings import BaseSettings, SettingsConfigDict

from orderflow import __version__


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "orderflow"
    version: str = __version__
    DEBUG: bool = False
    APP_DATABASE_DSN: str = "sqlite:////tmp/orderflow.db"
    LOG_LEVEL: str = "INFO"

    # CORS for the production, delivery and admin dashboards
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Idempotency keys older than this may be purged
    IDEMPOTENCY_TTL_HOURS: int = 24

    DEFAULT_PAYMENT_METHOD: str = "cash"

    # Client payment sheet
    RECENT_TRANSACTIONS_LIMIT: int = 10
    RECENT_SETTLEMENTS_LIMIT: int = 5


settings = Settings()
