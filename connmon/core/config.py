from enum import StrEnum

from pydantic_settings import BaseSettings


class Environment(StrEnum):
    development = "development"
    production = "production"


class Settings(BaseSettings):
    ENV: Environment = Environment.development
    LOG_LEVEL: str = "INFO"

    HISTORY_CAPACITY: int = 50
    UPTIME_TICK_SECONDS: float = 1.0
    HEALTHY_LATENCY_MS: int = 500

    HEARTBEAT_INTERVAL_SECONDS: float = 10.0
    HEARTBEAT_TIMEOUT_SECONDS: float = 30.0

    WS_URL: str = "ws://localhost:8765"
    HTTP_HOST: str = "0.0.0.0"
    HTTP_PORT: int = 8080

    @property
    def is_production(self) -> bool:
        return self.ENV == Environment.production


settings = Settings()
