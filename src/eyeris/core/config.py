from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROVIDER: str = "ollama"
    LOG_LEVEL: str = "INFO"

    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "moondream"

    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_MODEL: str = "gpt-4o-mini"
    # Name of the variable holding the key; the key itself is read per request.
    OPENAI_API_KEY_ENV: str = "OPENAI_API_KEY"
    OPENAI_TEMPERATURE: float = 0.2
    OPENAI_MAX_TOKENS: int = 1000

    HTTP_TIMEOUT: float = 120.0

    MAX_DIMENSION: int = 768
    ANALYSIS_JPEG_QUALITY: int = 10

    THUMBNAIL_ENABLED: bool = True
    THUMBNAIL_SIZE: int = 300
    THUMBNAIL_JPEG_QUALITY: int = 85
    BRIGHTNESS_FACTOR: float = 1.1
    ENHANCE_WORKERS: Optional[int] = None

    DEFAULT_FORMAT: str = "json"
    MAX_CONCURRENT_REQUESTS: int = 10


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
