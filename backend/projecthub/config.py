from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ENV: str = "development"
    LOG_LEVEL: Optional[str] = None
    LOG_DIR: Optional[str] = None

    DATABASE_URL: str = "sqlite:///./projecthub.db"
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 7 * 24 * 60

    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_SIZE_BYTES: int = 100 * 1024 * 1024
    MAX_SUBMISSION_FILES: int = 10

    AUTO_COMPLETE_ENABLED: bool = True
    AUTO_COMPLETE_INTERVAL_SECONDS: int = 60 * 60

    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM_EMAIL: Optional[str] = None
    EMAIL_WORKERS: int = 2

    class Config:
        env_file = ".env"

settings = Settings()
