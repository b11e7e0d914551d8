from functools import lru_cache
import json
from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator

_ENV_CANDIDATES = (
    Path(__file__).resolve().parent.parent.parent / ".env",
    Path(__file__).resolve().parent.parent / ".env",
    Path.cwd() / ".env",
)

for env_path in _ENV_CANDIDATES:
    if env_path.is_file():
        load_dotenv(env_path, override=False)
        break


class Settings(BaseSettings):
    """Application configuration sourced from environment variables."""

    database_url: str = "postgresql+psycopg://postgres:postgres@db:5432/kebo"
    api_prefix: str = "/api"
    allow_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://localhost:8000",
        ]
    )

    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    ai_model: str = "gpt-4o-mini"
    transcription_model: str = "whisper-1"
    ai_max_steps: int = 5

    kapso_api_key: str | None = Field(default=None, alias="KAPSO_API_KEY")
    kapso_base_url: str = "https://api.kapso.ai/meta/whatsapp"
    kapso_api_version: str = "v24.0"
    history_limit: int = 20

    # Deployed users are in Colombia/Peru; boundaries use a fixed offset, no DST.
    timezone_offset_hours: int = -5
    default_timezone: str = "America/Bogota"
    default_locale: str = "es"
    default_currency: str = "USD"

    media_dir: Path = Path("media")
    public_base_url: str = "http://localhost:8000"
    food_search_url: str = "https://world.openfoodfacts.org/cgi/search.pl"
    http_timeout_seconds: float = 15.0

    model_config = SettingsConfigDict(env_file=None, populate_by_name=True)

    @field_validator("allow_origins", mode="before")
    @classmethod
    def parse_allow_origins(cls, value: object) -> list[str]:
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("["):
                try:
                    return json.loads(stripped)
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in stripped.split(",") if item.strip()]
        if isinstance(value, (list, tuple)):
            return [str(item) for item in value]
        raise ValueError("Invalid allow_origins format.")

    @field_validator("default_locale")
    @classmethod
    def check_locale(cls, value: str) -> str:
        lowered = value.strip().lower()
        if lowered not in {"en", "es"}:
            raise ValueError("default_locale must be 'en' or 'es'.")
        return lowered

    @field_validator("public_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Return cached settings to avoid repeated environment parsing."""
    return Settings()
