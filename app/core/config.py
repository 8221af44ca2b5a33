from pydantic_settings import BaseSettings
from pydantic import field_validator, model_validator
from typing import List


class Settings(BaseSettings):
    # Project Info
    PROJECT_NAME: str = "Digital Address API"
    API_V1_STR: str = "/api/v1"

    # Database
    DATABASE_URL: str

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    PASSWORD_RESET_EXPIRE_MINUTES: int = 60

    # Session activity (client-side guard)
    SESSION_IDLE_TIMEOUT_SECONDS: int = 20 * 60
    SESSION_PING_INTERVAL_SECONDS: int = 60

    # Fallback contacts
    FALLBACK_EXTRA_FEE_AMOUNT: float = 15.0
    FALLBACK_FEE_CURRENCY: str = "SAR"

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5000",
    ]

    # Email
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    EMAILS_FROM_EMAIL: str = ""
    EMAILS_FROM_NAME: str = "Digital Address"

    # Photos
    MAX_UPLOAD_SIZE: int = 5242880  # 5MB
    ALLOWED_EXTENSIONS: List[str] = ["jpg", "jpeg", "png", "webp"]
    PHOTO_MAX_WIDTH: int = 1280
    PHOTO_JPEG_QUALITY: int = 80

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Frontend
    FRONTEND_URL: str = "http://localhost:5000"

    # Monitoring (Optional - Add to .env for production)
    SENTRY_DSN: str = ""

    # Celery & Redis (Task Queue)
    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"

    ALLOWED_HOSTS: List[str] = ["*"]

    @field_validator("ENVIRONMENT")
    @classmethod
    def normalize_environment(cls, value: str) -> str:
        return value.lower().strip()

    @model_validator(mode="after")
    def validate_session_timing(self):
        if self.SESSION_PING_INTERVAL_SECONDS <= 0:
            raise ValueError("SESSION_PING_INTERVAL_SECONDS must be positive")
        if self.SESSION_PING_INTERVAL_SECONDS >= self.SESSION_IDLE_TIMEOUT_SECONDS:
            raise ValueError(
                "SESSION_PING_INTERVAL_SECONDS must be shorter than SESSION_IDLE_TIMEOUT_SECONDS"
            )
        return self

    @model_validator(mode="after")
    def validate_production_secret(self):
        if self.ENVIRONMENT == "production":
            normalized_secret = (self.SECRET_KEY or "").strip()
            if len(normalized_secret) < 32 or "your-secret-key-here" in normalized_secret.lower():
                raise ValueError("SECRET_KEY must be at least 32 chars and not use placeholders in production")
        return self

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore",
    }


settings = Settings()
