from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Booking Ledger"
    version: str = "0.1.0"
    DEBUG: bool = False
    APP_DOMAIN: str = "example.com"
    APP_DATABASE_DSN: str = "sqlite:////tmp/booking_ledger.db"
    REDIS_URL: str = "redis://localhost:6379"
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Payment admission
    LEDGER_ADMISSION_MAX_ATTEMPTS: int = 3
    LEDGER_LOCK_TIMEOUT_SECONDS: float = 10.0

    # Idempotency-Key replay window
    IDEMPOTENCY_TTL_HOURS: int = 24


settings = Settings()
