from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Any, ClassVar
import json
from pathlib import Path
import os


class Settings(BaseSettings):
    API_V1_STR: str = ""

    # JWT verification for sessions issued by the hosted auth provider
    # (provide a fallback for local development)
    SECRET_KEY: str = "fallback_secret_for_dev_only"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Database URL
    # Use an absolute path so running the app from different directories
    # (e.g., repo root or backend/) always resolves the same DB file.
    BASE_DIR: ClassVar[Path] = Path(__file__).resolve().parents[2]
    SQLALCHEMY_DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'gigs.db'}"

    # Hosted database project identifier and anonymous key. The backend talks
    # to the database through SQLALCHEMY_DATABASE_URL; these are accepted so a
    # .env shared with the frontend loads without validation errors.
    DATABASE_PROJECT_ID: str = ""
    DATABASE_ANON_KEY: str = ""

    # CORS origins
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Google Places proxy
    GOOGLE_MAPS_API_KEY: str = ""
    PLACES_TIMEOUT: float = 10.0
    PLACES_RESULT_LIMIT: int = 5

    # Team invitations
    INVITATION_EXPIRE_DAYS: int = 7

    LOG_LEVEL: str = "INFO"

    @field_validator("CORS_ORIGINS", mode="before")
    def split_origins(cls, v: Any) -> list[str]:
        """Parse comma-separated or JSON list of origins from environment."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                pass
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("GOOGLE_MAPS_API_KEY", "SECRET_KEY", mode="before")
    def strip_secret(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
