# storefront/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Postgres connection string, or sqlite:// for local runs)
      - JWT_SECRET (HS256 secret shared with the identity provider)

    Optional:
      - LOG_LEVEL, CORS_ORIGINS
      - TAX_RATE, FREE_SHIPPING_THRESHOLD, SHIPPING_FEE (checkout pricing)
      - DEFAULT_UNDELIVERED_REASON (used when a rider gives no reason)
    """

    PROJECT_NAME: str = "Storefront Orders API"
    API_V1_STR: str = "/api/v1"

    DATABASE_URL: str

    # JWT verification (backend-side)
    JWT_SECRET: str
    JWT_ALG: str = "HS256"

    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Checkout pricing
    TAX_RATE: float = 0.08
    FREE_SHIPPING_THRESHOLD: float = 100.0
    SHIPPING_FEE: float = 10.0

    DEFAULT_UNDELIVERED_REASON: str = "Customer not available"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
