from pydantic_settings import BaseSettings
from functools import lru_cache

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./gift_shop.db"
    TELEGRAM_BOT_TOKEN: str
    TELEGRAM_WEBHOOK_URL: str = ""
    TELEGRAM_WEBHOOK_SECRET: str = ""
    TONCENTER_API_URL: str = "https://toncenter.com/api/v2"
    TONCENTER_API_KEY: str = ""
    TON_WALLET_ADDRESS: str = ""
    DEFAULT_LANG: str = "ru"
    SESSION_TTL_SECONDS: int = 1800
    LEDGER_TIMEOUT_SECONDS: float = 10.0
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

@lru_cache()
def get_settings():
    return Settings()
