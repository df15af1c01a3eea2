# backend/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./stock.db"

    # Blob area for photo files, served back under STORAGE_URL
    STORAGE_DIR: str = "storage"
    STORAGE_URL: str = "/storage"
    PHOTO_PREFIX: str = "stock-photos"

    MAX_PHOTOS: int = 5
    MAX_UPLOAD_BYTES: int = 20 * 1024 * 1024
    IMAGE_QUALITY: int = 80

    # False keeps the observed behaviour: uploads past the cap are dropped
    REJECT_PHOTO_OVERFLOW: bool = False

    FRONTEND_URL: Optional[str] = None
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"

settings = Settings()
