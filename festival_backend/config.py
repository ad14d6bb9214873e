"""
Configuration for the Festival Inquiry Service
==============================================

Environment variables:
- FILE_TOKEN_SECRET: HMAC secret for file access tokens (>= 32 bytes recommended)
- FILE_TOKEN_TTL_SECONDS: Lifetime of a file access token (default: 300)
- DATABASE_URL: SQLAlchemy URL (default: sqlite:///./dev.db)
- STORAGE_BASE_URL: Base URL of the object storage bucket
- CORS_ALLOW_ORIGINS: Comma separated list of allowed origins
- SMTP_HOST / SMTP_PORT / SMTP_USER / SMTP_PASSWORD / SMTP_FROM / SMTP_USE_TLS
- APP_URL: Frontend URL used in notification links
"""

from typing import List
from pydantic_settings import BaseSettings
from functools import lru_cache

DEV_FILE_TOKEN_SECRET = "dev-file-token-secret-change-in-production"
MIN_SECRET_BYTES = 32


class Settings(BaseSettings):
    """Application settings from environment variables"""

    # File access tokens
    file_token_secret: str = DEV_FILE_TOKEN_SECRET
    file_token_ttl_seconds: int = 300

    # Database
    database_url: str = "sqlite:///./dev.db"
    sql_echo: bool = False

    # Object storage (presigned/public URLs are issued by the bucket, not here)
    storage_base_url: str = "http://localhost:9000/festival-files"

    # HTTP
    cors_allow_origins: str = "http://localhost:5173,http://127.0.0.1:5173"

    # Email
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = "noreply@festival.local"
    smtp_use_tls: bool = True
    app_url: str = "http://localhost:5173"

    # Service info
    service_version: str = "1.0.0"

    class Config:
        env_prefix = ""
        case_sensitive = False
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def cors_origins(self) -> List[str]:
        origins: List[str] = []
        for item in self.cors_allow_origins.split(","):
            origin = item.strip().strip('"').strip("'").rstrip("/")
            if origin:
                origins.append(origin)
        return origins

    def validate_config(self) -> List[str]:
        """Validate configuration, return list of warnings"""
        warnings = []

        if self.file_token_secret == DEV_FILE_TOKEN_SECRET:
            warnings.append("FILE_TOKEN_SECRET not set, using the development default")
        elif len(self.file_token_secret.encode("utf-8")) < MIN_SECRET_BYTES:
            warnings.append(f"FILE_TOKEN_SECRET is shorter than {MIN_SECRET_BYTES} bytes")

        if self.file_token_ttl_seconds < 0:
            warnings.append("FILE_TOKEN_TTL_SECONDS is negative, tokens will be born expired")

        if not (self.smtp_host and self.smtp_user and self.smtp_password):
            warnings.append("SMTP not configured, notification emails will only be logged")

        return warnings


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
