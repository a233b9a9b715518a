# src/padel_api/core/config.py

import logging
from typing import List

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Values from the process environment always win over the .env file.
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra='ignore')

    APP_TITLE: str = "Padel Users API"
    APP_DESCRIPTION: str = "User accounts for the padel club application"
    APP_VERSION: str = "1.0.0"

    MONGO_DB_URL: str = "mongodb://localhost:27017/padel_db"

    # JWT signing key (set it through the environment in production)
    SECRET_KEY: str = "a_very_secret_key_that_should_be_changed"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    BCRYPT_ROUNDS: int = 10

    # Uploaded avatars are written here; DEFAULT_IMAGE is never deleted
    UPLOAD_DIR: str = "uploads"
    DEFAULT_IMAGE: str = "assets/avatar.png"

    # When true every error is answered with 400, as the legacy clients expect
    UNIFORM_ERROR_STATUS: bool = False

    CORS_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    @computed_field
    @property
    def MONGO_DB_NAME(self) -> str:
        # mongodb://host:port/<db_name>?options
        return self.MONGO_DB_URL.split("/")[-1].split("?")[0]

settings = Settings()

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger("padel_api")

logger.info("Configuration loaded successfully.")
logger.info(f"Application Title: {settings.APP_TITLE}")
