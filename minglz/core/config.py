from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent.parent  # project root
ENV_PATH = BASE_DIR / ".env"

# Force load .env into environment variables first
load_dotenv(dotenv_path=ENV_PATH)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        case_sensitive=False,
    )

    DATABASE_URL: str

    JWT_SECRET: str
    JWT_ALG: str = "HS256"
    JWT_ACCESS_MINUTES: int = 60
    JWT_REFRESH_DAYS: int = 7

    # "local" zone for coupon expiry and stats buckets
    APP_TIMEZONE: str = "Asia/Seoul"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:3001",
        "http://localhost:3002",
    ]
    ADMIN_EMAILS: list[str] = []
    COOKIE_SECURE: bool = False

    # object store (Supabase Storage compatible REST API)
    STORAGE_URL: str | None = None
    STORAGE_SERVICE_KEY: str | None = None
    STORAGE_BUCKET: str = "event-images"
    UPLOAD_MAX_BYTES: int = 10 * 1024 * 1024

    # transactional email
    RESEND_API_URL: str = "https://api.resend.com"
    RESEND_API_KEY: str | None = None
    RESEND_FROM_EMAIL: str = "onboarding@resend.dev"
    VERIFICATION_CODE_TTL_MINUTES: int = 10

    LOG_LEVEL: str = "INFO"

    # no migrations ship with the service; create tables on startup when set
    DB_CREATE_TABLES: bool = False

    @property
    def database_url_async(self) -> str:
        url = self.DATABASE_URL.strip()
        if url.startswith("postgres://"):
            return "postgresql+asyncpg://" + url[len("postgres://") :]
        if url.startswith("postgresql://"):
            return "postgresql+asyncpg://" + url[len("postgresql://") :]
        return url


settings = Settings()
