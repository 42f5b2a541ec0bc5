from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str

    # JWT principal resolution
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Application
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: Optional[str] = None

    # Moderation
    MODERATION_BATCH_LIMIT: int = 50
    MODERATION_QUEUE_DEFAULT_LIMIT: int = 20
    MODERATION_QUEUE_MAX_LIMIT: int = 100
    MODERATION_LOG_PREVIEW_LIMIT: int = 10

    # Reports
    REPORT_ARCHIVE_ATTEMPTS: int = 3

    # Role management
    USER_LIST_DEFAULT_LIMIT: int = 50
    USER_LIST_MAX_LIMIT: int = 200

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )


settings = Settings()
