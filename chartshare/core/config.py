"""
Configuration Management
Loads settings from environment variables with type validation
"""

from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Chart Sharing Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:4280",
        "http://localhost:8000",
    ]

    # PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "chartuser"
    POSTGRES_PASSWORD: str = "chart_password"
    POSTGRES_DB: str = "orgchart"

    # Overrides the PostgreSQL settings when set (e.g. sqlite+aiosqlite in tests)
    DATABASE_URL: Optional[str] = None

    @property
    def POSTGRES_URL(self) -> str:
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def database_url(self) -> str:
        return self.DATABASE_URL or self.POSTGRES_URL

    # Authentication boundary
    ADMIN_USER_IDS: str = ""
    ALLOW_ANONYMOUS: bool = False
    DEV_USER_ID: str = "dev-user-001"
    DEV_USER_EMAIL: str = "developer@local.dev"

    # Share links
    FRONTEND_URL: Optional[str] = None
    SHARE_LINK_TTL_DAYS: Optional[int] = None

    # Access requests
    MAX_REASON_LENGTH: int = 500

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True

    # Monitoring
    ENABLE_METRICS: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid = ["development", "staging", "production"]
        if v not in valid:
            raise ValueError(f"ENVIRONMENT must be one of {valid}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {valid}")
        return v_upper

    @field_validator("SHARE_LINK_TTL_DAYS")
    @classmethod
    def validate_share_link_ttl(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("SHARE_LINK_TTL_DAYS must be positive")
        return v

    @property
    def admin_user_ids(self) -> List[str]:
        """Bootstrap admin identities from ADMIN_USER_IDS='id-1,id-2'"""
        return [uid.strip() for uid in self.ADMIN_USER_IDS.split(",") if uid.strip()]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "allow"


# Global settings instance
settings = Settings()
