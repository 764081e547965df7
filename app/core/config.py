from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, computed_field
from typing import List


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Fathom Transcript Manager"
    ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    API_PREFIX: str = "/api"
    CORS_ORIGINS: List[str] = ["*"]

    # Fathom external API
    FATHOM_API_KEY: str = "__MISSING__"
    FATHOM_BASE_URL: str = "https://api.fathom.ai/external/v1"
    FATHOM_TIMEOUT_SECONDS: float = 30.0
    FATHOM_REQUEST_DELAY_SECONDS: float = 1.0   # Between paginated requests
    FATHOM_MAX_REQUESTS_PER_MINUTE: int = 60
    FATHOM_RATE_LIMIT_PAUSE_SECONDS: float = 60.0

    DB_CONNECTION: str = "postgresql+asyncpg"
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_DATABASE: str = "fathom_transcripts"
    DB_USERNAME: str = "fathom"
    DB_PASSWORD: str = "fathom"

    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10
    DATABASE_POOL_TIMEOUT: int = 30
    DB_CREATE_TABLES_ON_STARTUP: bool = True

    @computed_field
    @property
    def DATABASE_URL(self) -> str:
        return f"{self.DB_CONNECTION}://{self.DB_USERNAME}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_DATABASE}"

    # Incremental sync on startup and on an interval
    AUTO_SYNC_ENABLED: bool = True
    AUTO_SYNC_INTERVAL_HOURS: float = 2.0

    MAX_EXPORT_TRANSCRIPTS: int = 100
    DEBUG_SEARCH_SAMPLE_SIZE: int = 50

    @field_validator("FATHOM_API_KEY")
    @classmethod
    def validate_fathom_key(cls, v: str) -> str:
        if not v or v == "__MISSING__":
            import os
            if os.getenv("ENV", "development") != "development":
                raise ValueError("FATHOM_API_KEY is required and was not provided")
            return "__MISSING__"
        return v


settings = Settings()
