from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Async engine
    ASYNC_TIMEOUT_MS: int = 5000   # Per-rule timeout when a rule sets none
    DEBOUNCE_MS: int = 300         # Window used when a rule asks for debouncing without a delay

    # Registry
    WARN_ON_UNKNOWN_RULE: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # True for production (structured JSON), False for dev (colored)

    @property
    def async_timeout_seconds(self) -> float:
        return self.ASYNC_TIMEOUT_MS / 1000

    class Config:
        env_prefix = "FORMSCHEMA_"
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()
