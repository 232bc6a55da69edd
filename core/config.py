from pydantic_settings import BaseSettings
from pydantic import ConfigDict

class Settings(BaseSettings):
    model_config = ConfigDict(env_file=".env", extra="ignore")

    ENV: str = "development"

    DATABASE_URL: str = "sqlite:///./mess_orders.db"
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    CORS_ORIGINS: list[str] = ["http://localhost:3001", "http://localhost:3002"]
    RATE_LIMIT_DEFAULT: str = "200/hour"

    # Orders
    BUSINESS_TIMEZONE: str = "UTC"
    MAX_TABLE_NUMBER: int = 10
    PHONE_REGION: str = "IN"
    LATEST_ORDERS_LIMIT: int = 5
    DEFAULT_PAGE_SIZE: int = 10

    # Streams
    STREAM_HEARTBEAT_SECONDS: float = 30.0
    STREAM_QUEUE_SIZE: int = 100
    BROKER_SLOW_CALLBACK_MS: float = 50.0

    # Stream client
    CLIENT_RECONNECT_DELAY_SECONDS: float = 5.0
    CLIENT_MAX_RETRIES: int = 3
    CLIENT_RETRY_DELAY: float = 1.0
    CLIENT_TIMEOUT_SECONDS: float = 10.0


settings = Settings()
