from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "local"
    APP_NAME: str = "Shuttle Booking API"
    # Comma-separated origins for CORS (e.g. https://shuttle.example.com,https://admin.shuttle.example.com). If empty, uses localhost defaults.
    CORS_ORIGINS: str = ""
    LOG_LEVEL: str = "INFO"

    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    DATABASE_URL: str
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Render and others give postgres://; SQLAlchemy expects postgresql+psycopg2://."""
        if v and v.startswith("postgres://"):
            return "postgresql+psycopg2://" + v[11:]
        return v
    REDIS_URL: str = "redis://localhost:6379/0"

    # Operating timezone: "today" for departures and the rolling window
    TIMEZONE: str = "America/New_York"

    # Inventory
    DEFAULT_DEPARTURE_CAPACITY: int = 12
    ROLLING_WINDOW_DAYS: int = 30
    MAX_GENERATION_DAYS: int = 366
    UPCOMING_DEPARTURES_LIMIT: int = 30

    # Fee fallbacks when no site setting is stored
    DEFAULT_EXTRA_LUGGAGE_FEE: int = 5
    DEFAULT_PET_FEE: int = 10

    EMAILS_ENABLED: bool = True
    # Sends (first try included) before a queued email is abandoned
    EMAIL_MAX_ATTEMPTS: int = 5
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 25
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = "bookings@shuttle.local"

    SENDGRID_API_KEY: str = ""
    SENDGRID_FROM_EMAIL: str = ""

    CLIENT_BASE_URL: str = ""  # e.g. https://shuttle.example.com, used for links in emails

    # First admin account created by shuttle.seed
    SEED_ADMIN_EMAIL: str = "admin@shuttle.local"
    SEED_ADMIN_PASSWORD: str = "admin12345"
    SEED_SAMPLE_DATA: bool = True


settings = Settings()
