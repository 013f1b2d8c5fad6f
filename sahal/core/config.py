"""
Application configuration management using Pydantic Settings
Handles all environment variables and membership business constants
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List
from decimal import Decimal
from functools import lru_cache

class Settings(BaseSettings):
    """Main application settings"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    # Application Settings
    APP_NAME: str = "Sahal Card API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 4

    # Database Configuration
    DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 40
    DATABASE_POOL_TIMEOUT: int = 30
    DATABASE_ECHO: bool = False

    # Security Settings
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # CORS Configuration
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]
    ALLOWED_HOSTS: List[str] = ["*"]

    # Celery Configuration
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"
    CELERY_TIMEZONE: str = "UTC"

    # Business Logic Settings
    COMMISSION_RATE: Decimal = Decimal("0.40")
    DEFAULT_MONTHLY_FEE: Decimal = Decimal("1.00")
    MIN_MONTHS_PURCHASED: int = 1
    MAX_MONTHS_PURCHASED: int = 120
    MAX_MONTHS_PER_PAYMENT: int = 120
    PHONE_COUNTRY_CODE: str = "252"
    CUSTOMER_ID_START: int = 1

    # Overdue sweep
    REMINDER_DAYS: int = 3
    FINAL_REMINDER_DAYS: int = 1
    EXPIRING_SOON_DAYS: int = 30
    OVERDUE_SWEEP_INTERVAL_SECONDS: int = 60 * 60 * 24

    # Persistence retries (attempts after the first failure)
    PERSISTENCE_RETRY_ATTEMPTS: int = 1

    # Pagination
    DEFAULT_PAGE_SIZE: int = 50
    MAX_PAGE_SIZE: int = 200

    @property
    def database_url_async(self) -> str:
        """Convert sync database URL to async"""
        if self.DATABASE_URL.startswith("postgresql://"):
            return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")
        elif self.DATABASE_URL.startswith("sqlite://"):
            return self.DATABASE_URL.replace("sqlite://", "sqlite+aiosqlite://")
        return self.DATABASE_URL

@lru_cache()
def get_settings() -> Settings:
    """
    Create cached settings instance
    This ensures settings are loaded only once
    """
    return Settings()

# Global settings instance
settings = get_settings()
