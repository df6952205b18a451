from typing import Annotated, List, Union
from urllib.parse import quote_plus

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    # Project settings
    PROJECT_NAME: str = "Wallnest"
    VERSION: str = "1.0.0"
    DESCRIPTION: str = "Wallpaper sharing and community forum API"
    API_V1_STR: str = "/api/v1"

    # Security
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    ACCESS_TOKEN_COOKIE_NAME: str = "access_token"

    # Cookie settings
    COOKIE_SECURE: bool = False  # True in production behind HTTPS
    COOKIE_HTTPONLY: bool = True
    COOKIE_SAMESITE: str = "lax"

    # Database - prefer discrete Postgres settings; fallback to DATABASE_URL
    DATABASE_URL: str = ""  # Optional explicit URL; leave empty to assemble from fields below
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "wallnest"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    DATABASE_DIALECT: str = "postgresql+asyncpg"
    DATABASE_ECHO: bool = False

    # Migrations
    AUTO_MIGRATE_ON_STARTUP: bool = False

    # CORS
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "app.log"

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Uploads
    UPLOAD_DIR: str = "uploads"
    UPLOAD_URL_PREFIX: str = "/uploads"
    MAX_UPLOAD_SIZE: int = 50 * 1024 * 1024
    THUMBNAIL_WIDTH: int = 300
    ALLOWED_IMAGE_TYPES: List[str] = ["image/jpeg", "image/png", "image/webp", "image/gif"]

    # AWS S3 (used instead of local disk when a bucket is configured)
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_S3_REGION: str = "ap-southeast-1"
    AWS_S3_BUCKET: str = ""
    AWS_S3_PUBLIC_URL: str = ""  # Optional CDN/base URL; if empty, build from region/bucket

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


settings = Settings()


def get_database_url() -> str:
    """Return DATABASE_URL or assemble one from the POSTGRES_* settings."""
    if settings.DATABASE_URL:
        return settings.DATABASE_URL

    # Credentials may contain characters like @ : /
    user = quote_plus(settings.POSTGRES_USER or "")
    password = quote_plus(settings.POSTGRES_PASSWORD or "")
    if password:
        cred = f"{user}:{password}@"
    elif user:
        cred = f"{user}@"
    else:
        cred = ""
    return (
        f"{settings.DATABASE_DIALECT}://{cred}"
        f"{settings.POSTGRES_HOST}:{settings.POSTGRES_PORT}/{settings.POSTGRES_DB}"
    )
