from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Basic settings
    PROJECT_NAME: str = "Business Onboarding"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # Descope Authentication
    DESCOPE_PROJECT_ID: Optional[str] = None
    DESCOPE_MANAGEMENT_KEY: Optional[str] = None

    # Development token bypass (never honoured in production)
    DEV_BYPASS_AUTH: bool = False
    DEV_BYPASS_UID: str = "dev_uid"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./onboarding.db"

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    BRAND_CACHE_TTL_SECONDS: int = 300

    # CORS
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:8080"]

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):
        if isinstance(v, str):
            return [i.strip() for i in v.split(",")]
        return v

    # File Upload
    MAX_IMAGE_UPLOAD_SIZE: int = 5242880  # 5MiB
    MAX_DOCUMENT_UPLOAD_SIZE: int = 5242880  # 5MiB
    MAX_VIDEO_UPLOAD_SIZE: int = 52428800  # 50MiB
    UPLOAD_PATH: str = "./uploads"
    MEDIA_BASE_URL: str = "http://localhost:8000/media"
    MEDIA_CACHE_CONTROL: str = "public, max-age=31536000"

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "case_sensitive": True}

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


# Global settings instance
settings = Settings()
