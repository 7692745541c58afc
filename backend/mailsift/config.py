# backend/mailsift/config.py
from pydantic_settings import BaseSettings
from typing import Optional
import os

class Settings(BaseSettings):
    APP_NAME: str = "mailsift"

    POSTGRES_USER: str = os.environ.get("POSTGRES_USER", "postgres")
    POSTGRES_PASSWORD: str = os.environ.get("POSTGRES_PASSWORD", "postgres")
    POSTGRES_DB: str = os.environ.get("POSTGRES_DB", "mailsift")
    POSTGRES_HOST: str = os.environ.get("POSTGRES_HOST", "db")
    POSTGRES_PORT: str = os.environ.get("POSTGRES_PORT", "5432")

    DATABASE_URL: str = os.environ.get(
        "DATABASE_URL",
        f"postgresql+asyncpg://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}"
    )

    # Redis & queue (only used when DISPATCH_MODE=redis)
    REDIS_URL: str = os.environ.get("REDIS_URL", "redis://redis:6379/0")
    QUEUE_KEY: str = "mailsift:validations"

    # "local" runs validations as asyncio tasks in the API process,
    # "redis" pushes them to QUEUE_KEY for mailsift.worker
    DISPATCH_MODE: str = os.environ.get("DISPATCH_MODE", "local")

    # Verifier backend: "simulated" or "millionverifier"
    VERIFIER_BACKEND: str = os.environ.get("VERIFIER_BACKEND", "simulated")
    VERIFIER_DELAY: float = float(os.environ.get("VERIFIER_DELAY", 0.01))
    MILLIONVERIFIER_API_KEY: Optional[str] = os.environ.get("MILLIONVERIFIER_API_KEY")
    MILLIONVERIFIER_URL: str = os.environ.get(
        "MILLIONVERIFIER_URL", "https://api.millionverifier.com/api/v3/"
    )
    MILLIONVERIFIER_TIMEOUT: int = int(os.environ.get("MILLIONVERIFIER_TIMEOUT", 10))

    # Mark repeated addresses within one upload as "duplicate" instead of verifying them again
    MARK_DUPLICATES: bool = os.environ.get("MARK_DUPLICATES", "False").lower() in ("1", "true", "yes")

    # File uploads
    UPLOAD_PATH: str = os.environ.get("UPLOAD_PATH", "/tmp/mailsift/uploads")
    MAX_UPLOAD_SIZE_MB: int = int(os.environ.get("MAX_UPLOAD_SIZE_MB", 25))

    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")
    DEBUG: bool = os.environ.get("DEBUG", "False").lower() in ("1", "true", "yes")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


settings = Settings()
