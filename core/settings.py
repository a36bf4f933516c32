from functools import lru_cache
from typing import List, Literal

from pydantic import BaseModel, Field, PostgresDsn, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CustomSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


class AppSettings(CustomSettings):
    ENVIRONMENT: Literal["local", "dev", "prod"] = Field(default="local")
    LOG_LEVEL: str = Field(default="INFO")
    JSON_LOGS: bool = Field(default=True)
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"]
    )


class PgDbSettings(CustomSettings):
    POSTGRES_ENGINE: str = Field(default="postgresql+asyncpg")
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: SecretStr = Field(default="postgres")
    POSTGRES_DB: str = Field(default="chat")
    POSTGRES_HOST: str = Field(default="localhost")
    POSTGRES_PORT: int = Field(default=5432)
    DATABASE_URL: PostgresDsn | str = Field(default="")
    DB_AUTO_CREATE: bool = Field(default=True)

    @model_validator(mode="before")
    def validate_postgres_dsn(cls, data: dict):
        if isinstance(data, dict) and not data.get("DATABASE_URL"):
            _built_uri = PostgresDsn.build(
                scheme=data.get("POSTGRES_ENGINE", "postgresql+asyncpg"),
                username=data.get("POSTGRES_USER", "postgres"),
                password=data.get("POSTGRES_PASSWORD", "postgres"),
                host=data.get("POSTGRES_HOST", "localhost"),
                port=int(data.get("POSTGRES_PORT", 5432)),
                path=data.get("POSTGRES_DB", "chat"),
            ).unicode_string()
            data["DATABASE_URL"] = _built_uri
        return data


class ModelSettings(CustomSettings):
    """Upstream language-model endpoint.

    Set via env vars:
    - MODEL_PROVIDER: ``openai`` (chat completions) or ``data_stream``
      (an endpoint emitting ``0:``/``e:``/``d:`` frames)
    - MODEL_API_KEY
    - MODEL_BASE_URL
    - MODEL_NAME
    """

    MODEL_PROVIDER: Literal["openai", "data_stream"] = Field(default="openai")
    MODEL_API_KEY: SecretStr = Field(default="")
    MODEL_BASE_URL: str = Field(default="")
    MODEL_NAME: str = Field(default="gpt-4o-mini")
    MODEL_TIMEOUT_SECONDS: float = Field(default=120.0)
    MODEL_SYSTEM_PROMPT: str = Field(default="")


class RelaySettings(CustomSettings):
    """Pacing and bookkeeping knobs for the streaming relay."""

    PACING_FAST_MS: int = Field(default=20)
    PACING_NORMAL_MS: int = Field(default=100)
    PACING_SLOW_MS: int = Field(default=200)
    PACING_JITTER_RATIO: float = Field(default=0.4)
    TITLE_MAX_CHARS: int = Field(default=50)


class CacheSettings(CustomSettings):
    CACHE_DEBOUNCE_MS: int = Field(default=500)
    CACHE_TTL_SECONDS: float = Field(default=60.0)
    CACHE_MAX_ENTRIES: int = Field(default=1024)


class Settings(BaseModel):
    APP: AppSettings = Field(default_factory=AppSettings)
    DATABASE: PgDbSettings = Field(default_factory=PgDbSettings)
    MODEL: ModelSettings = Field(default_factory=ModelSettings)
    RELAY: RelaySettings = Field(default_factory=RelaySettings)
    CACHE: CacheSettings = Field(default_factory=CacheSettings)


@lru_cache
def get_settings() -> Settings:
    return Settings()


SETTINGS = get_settings()
