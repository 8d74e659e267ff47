# filehub/core/config.py
from typing import Set

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # General
    ENV: str = "dev"
    APP_NAME: str = "Model File Hub"
    BASE_URL: str = "http://localhost:3000"

    # Storage / DB
    DB_URL: str = "sqlite:///./data/filehub.db"
    STORAGE_BACKEND: str = "local"
    BLOB_ROOT: str = "./data/blobs"
    S3_UPLOAD_BUCKET: str = "model-files"
    S3_ENDPOINT_URL: str = ""
    AWS_REGION: str = "us-east-1"
    DOWNLOAD_URL_EXPIRES: int = 60 * 60
    BLOB_SIGNING_SECRET: str = "dev-blob-secret-please-change"
    IMAGE_LOCATION: str = "https://images.localhost"

    # Downloads
    UNAUTHENTICATED_DOWNLOAD: bool = True

    # Scanner webhook
    WEBHOOK_TOKEN: str = ""
    SPECIAL_PICKLE_IMPORTS: Set[str] = {
        "pytorch_lightning.callbacks.model_checkpoint.ModelCheckpoint",
    }

    # Auth
    JWT_SECRET: str = "dev-secret-please-change"
    JWT_ISSUER: str = "filehub"
    JWT_AUDIENCE: str = "filehub-users"
    JWT_EXPIRE_HOURS: int = 24
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = "ChangeMe!123"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"


_settings: Settings | None = None

def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
