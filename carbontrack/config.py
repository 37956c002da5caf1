from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "CarbonTrack API"
    APP_VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "dev"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: List[str] = ["*"]

    # Database
    DATABASE_URL: str = "sqlite:///./carbontrack.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600

    # Security
    SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # AWS / Email
    AWS_REGION: str = "ap-northeast-2"
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    SES_SENDER_EMAIL: str = ""
    SES_SENDER_NAME: str = "CarbonTrack"
    SES_MAX_RECIPIENTS_PER_MESSAGE: int = 50
    EMAIL_FORCE_SIMULATION: bool = False

    # Business Rules
    EXCHANGE_REFUND_ON_CANCEL: bool = False
    PRODUCT_PAGE_SIZE_MIN: int = 10
    PRODUCT_PAGE_SIZE_MAX: int = 50
    PRODUCT_PAGE_SIZE_DEFAULT: int = 20
    BROADCAST_EMAIL_PRIORITIES: List[str] = ["high", "urgent"]

    # Idempotency (X-Request-ID)
    IDEMPOTENCY_TTL_HOURS: int = 24

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() in ("prod", "production")

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    @property
    def email_simulation(self) -> bool:
        """발신 주소가 없거나 강제 설정된 경우 SES 호출 없이 발송을 시뮬레이션"""
        return self.EMAIL_FORCE_SIMULATION or not self.SES_SENDER_EMAIL


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
