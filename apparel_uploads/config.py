#config.py
import os
from pydantic_settings import BaseSettings
from pydantic import AliasChoices, Field
from pydantic_settings import SettingsConfigDict
from typing import Optional, List
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Application Settings
    APP_NAME: str = "Apparel Uploads API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    DOCS_ENABLED: bool = True

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = int(os.environ.get("PORT", 8000))

    # Database Settings
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "sqlite:///./apparel_uploads.db")

    # Security Settings (bearer tokens are issued by the external auth service)
    SECRET_KEY: str = Field(default="change-me-in-prod", validation_alias=AliasChoices("JWT_SECRET_KEY", "SECRET_KEY"))
    ALGORITHM: str = "HS256"
    SIGNED_URL_EXPIRE_SECONDS: int = 3600

    # CORS Settings (accept comma-separated strings to avoid JSON parsing in env)
    ALLOWED_ORIGINS: str = os.environ.get("ALLOWED_ORIGINS", "*")
    ALLOWED_METHODS: str = os.environ.get("ALLOWED_METHODS", "GET,POST,PUT,PATCH,DELETE,OPTIONS")
    ALLOWED_HEADERS: str = os.environ.get("ALLOWED_HEADERS", "*")
    CORS_ALLOW_CREDENTIALS: bool = True

    # Object storage (local filesystem buckets)
    UPLOAD_DIR: str = "uploads"
    BASE_URL: str = os.environ.get("BASE_URL", "http://localhost:8000")

    # Upload pipeline
    UPLOAD_BATCH_CHUNK_SIZE: int = 3
    UPLOAD_MAX_FILES_PER_REQUEST: int = 10
    UPLOAD_MAX_REQUEST_SIZE: int = 60 * 1024 * 1024  # largest policy cap plus multipart overhead
    UPLOAD_STRICT_SIGNATURE_CHECK: bool = False
    UPLOAD_ITEM_TIMEOUT_SECONDS: Optional[float] = None

    # Audit trail: "database" writes asset_audit_log rows, "log" writes AUDIT: log lines
    AUDIT_LOG_BACKEND: str = "database"

    # Middleware settings
    GZIP_MIN_SIZE: int = 500

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Accept comma-separated strings for list envs in addition to JSON arrays
    def _split_csv(self, value: str) -> List[str]:
        if value is None:
            return []
        value = value.strip()
        if value == "":
            return []
        return [item.strip() for item in value.split(",")]

    @property
    def allowed_origins_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_ORIGINS)

    @property
    def allowed_methods_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_METHODS)

    @property
    def allowed_headers_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_HEADERS)


@lru_cache()
def get_settings() -> Settings:
    s = Settings()
    # Normalize ALLOWED_ORIGINS if provided as comma-separated string env var CORS_ORIGINS
    cors_env = os.environ.get("CORS_ORIGINS")
    if cors_env:
        s.ALLOWED_ORIGINS = cors_env
    return s
