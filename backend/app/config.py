"""
Runtime configuration for TripCraft.

Values are read from the environment (a local .env file is loaded first)
and passed explicitly to the clients that need them.
"""

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.2
    openai_timeout: float = 60.0
    openai_max_retries: int = 0

    google_places_api_key: Optional[str] = None
    places_photo_max_width: int = 400

    openweather_api_key: Optional[str] = None
    weather_timeout: float = 10.0

    mongodb_uri: Optional[str] = None
    mongodb_db: str = "tripcraft"

    enrichment_concurrency: int = 5
    strict_enrichment: bool = False

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            openai_temperature=float(os.getenv("OPENAI_TEMPERATURE", "0.2")),
            openai_timeout=float(os.getenv("OPENAI_TIMEOUT", "60")),
            openai_max_retries=int(os.getenv("OPENAI_MAX_RETRIES", "0")),
            google_places_api_key=os.getenv("GOOGLE_PLACES_API_KEY"),
            places_photo_max_width=int(os.getenv("PLACES_PHOTO_MAX_WIDTH", "400")),
            openweather_api_key=os.getenv("OPENWEATHER_API_KEY"),
            weather_timeout=float(os.getenv("WEATHER_TIMEOUT", "10")),
            mongodb_uri=os.getenv("MONGODB_URI") or None,
            mongodb_db=os.getenv("MONGODB_DB", "tripcraft"),
            enrichment_concurrency=max(1, int(os.getenv("ENRICHMENT_CONCURRENCY", "5"))),
            strict_enrichment=_env_bool("STRICT_ENRICHMENT"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
