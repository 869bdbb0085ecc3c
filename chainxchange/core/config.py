from pydantic_settings import BaseSettings
from typing import Optional, List

class Settings(BaseSettings):
    PROJECT_NAME: str = "ChainXchange"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    DATABASE_URL: str = "sqlite:///./chainxchange.db"

    # Auth
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 2  # 2 days
    BCRYPT_ROUNDS: int = 12

    # Cache store. Without a URL the in-process memory store is used.
    REDIS_URL: Optional[str] = None
    CACHE_ENABLED: bool = True

    # CoinGecko
    COINGECKO_BASE_URL: str = "https://api.coingecko.com/api/v3"
    COINGECKO_TIMEOUT_SECONDS: float = 30.0
    COINGECKO_MAX_ATTEMPTS: int = 3
    COINGECKO_DEFAULT_RETRY_AFTER: int = 10
    COINGECKO_USER_AGENT: str = "ChainXchange/1.0"

    # Ceiling applied by request handlers around market-data reads
    CALLER_TIMEOUT_SECONDS: float = 30.0

    SCHEDULER_ENABLED: bool = True

    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None

    class Config:
        env_file = ".env"

settings = Settings()
