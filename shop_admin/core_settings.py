from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "shop"
    POSTGRES_USER: str = "shop"
    POSTGRES_PASSWORD: str = "shop"
    # Full URL override, e.g. sqlite:// for tests
    DATABASE_URL: Optional[str] = None
    RUN_MIGRATIONS: bool = False

    LOG_LEVEL: str = "INFO"

    # Payment gateway (PortOne v2 style API)
    PAYMENT_GATEWAY_URL: str = "https://api.portone.io"
    PAYMENT_AUTH_SCHEME: str = "PortOne"
    PAYMENT_API_SECRET: str = ""
    PAYMENT_TIMEOUT: float = 10.0

    # Kakao alimtalk through Solapi
    NOTIFY_API_URL: str = "https://api.solapi.com"
    SOLAPI_API_KEY: str = ""
    SOLAPI_API_SECRET: str = ""
    KAKAO_PF_ID: str = ""
    KAKAO_TEMPLATE_CANCEL: str = "order_cancellation"
    KAKAO_TEMPLATE_SHIPPING: str = "shipping_notification"
    NOTIFY_TIMEOUT: float = 5.0
    NOTIFY_TIMEZONE: str = "Asia/Seoul"

    class Config:
        env_file = ".env"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

@lru_cache
def get_settings() -> Settings:
    return Settings()
