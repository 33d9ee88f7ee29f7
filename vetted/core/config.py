from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # True for production (structured JSON), False for dev (colored)

    # Evaluation
    MAX_ERRORS: int | None = None  # Cap for collect-all mode; None keeps every violation

    # Schema compilation
    ENABLED_FORMATS: frozenset[str] = frozenset({"email", "url", "uuid", "ipv4", "ipv6", "datetime", "pattern"})
    WARN_UNRULED_FIELDS: bool = True

    def format_enabled(self, name: str) -> bool:
        return name.lower() in {f.lower() for f in self.ENABLED_FORMATS}

    class Config:
        env_prefix = "VETTED_"
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
