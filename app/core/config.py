"""Application configuration."""
from functools import lru_cache
from typing import Optional, List
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "Lubricentro Subscription API"
    DEBUG: bool = False
    API_V1_PREFIX: str = "/api/v1"
    FRONTEND_URL: str = "http://localhost:5173"

    # Database
    DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10
    TENANT_UPDATE_MAX_RETRIES: int = 3

    # JWT (REQUIRED)
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Trial policy
    TRIAL_DURATION_DAYS: int = 7
    TRIAL_MAX_SERVICES: int = 10
    TRIAL_MAX_USERS: int = 2

    # Mercado Pago
    MERCADOPAGO_BASE_URL: str = "https://api.mercadopago.com"
    MERCADOPAGO_ACCESS_TOKEN: Optional[str] = None
    MERCADOPAGO_WEBHOOK_SECRET: Optional[str] = None
    MERCADOPAGO_TIMEOUT_SECONDS: float = 30.0
    CURRENCY: str = "ARS"

    # CORS
    CORS_ORIGINS: str = "*"  # Comma-separated

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @field_validator("JWT_SECRET_KEY")
    @classmethod
    def check_secret(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("JWT_SECRET_KEY must not be empty")
        return v

    class Config:
        env_file = ".env"      # Local only
        case_sensitive = True
        extra = "ignore"      # Ignore unrelated env vars


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
