from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # --- Core ---
    PROJECT_NAME: str = "Restaurant_Orders"
    DATABASE_URL: str = "sqlite+aiosqlite:///./restaurant.db"
    REDIS_URL: str | None = None
    LOG_LEVEL: str = "INFO"

    # --- Startup ---
    DB_CONNECT_RETRIES: int = 10
    DB_RETRY_WAIT_SECONDS: float = 3

    # --- Permissions ---
    PERMISSION_CACHE_TTL_SECONDS: int = 60

    # --- Auto-expiry sweeper ---
    SWEEPER_ENABLED: bool = True
    SWEEP_INTERVAL_SECONDS: float = 30

    # --- Notifications (Twilio). Missing credentials disable sending. ---
    TWILIO_ACCOUNT_SID: str | None = None
    TWILIO_AUTH_TOKEN: str | None = None
    TWILIO_FROM_NUMBER: str | None = None
    ADMIN_PHONE_NUMBER: str | None = None
    TIMEZONE: str = "America/Guayaquil"

    # Postgres container variables live in the same .env
    POSTGRES_USER: str | None = None
    POSTGRES_PASSWORD: str | None = None
    POSTGRES_DB: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
