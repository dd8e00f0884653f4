# astrochat/core/settings.py
from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import dotenv_values
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ===== paths and .env loader ==================================================

BASE_DIR = Path(__file__).resolve().parents[2]

DEFAULT_JWT_SECRET = "CHANGE_ME"


def _load_env() -> None:
    """
    Load configuration with this priority:
    1) variables already present in the OS environment win
    2) the ENV-<ENV> file picked by ENV (prod/test/dev) overrides the shared .env
    3) the shared .env is the base
    SKIP_DOTENV disables reading files from disk.
    """
    if (os.getenv("SKIP_DOTENV") or "").lower() in {"1", "true", "yes"}:
        return
    common_path = BASE_DIR / ".env"
    base_vals = dotenv_values(common_path) if common_path.exists() else {}

    prefer = os.getenv("ENV", base_vals.get("ENV", "dev")).lower()
    env_file = {
        "prod": BASE_DIR / "ENV-PROD",
        "test": BASE_DIR / "ENV-TEST",
    }.get(prefer, BASE_DIR / "ENV-DEV")
    env_vals = dotenv_values(env_file) if env_file.exists() else {}

    merged = {**base_vals, **env_vals}
    if "ENV" not in merged:
        merged["ENV"] = prefer

    for key, value in merged.items():
        if key in os.environ:
            continue
        if value is None:
            continue
        os.environ[key] = str(value)


def _normalize_database_url(raw_url: str | None) -> str:
    """
    - empty → in-memory store (no SQL engine)
    - postgres:// is rewritten to the asyncpg dialect SQLAlchemy expects
    """
    raw = (raw_url or "").strip()
    if not raw:
        return ""
    if raw.startswith("postgres://"):
        return raw.replace("postgres://", "postgresql+asyncpg://", 1)
    if raw.startswith("postgresql://"):
        return raw.replace("postgresql://", "postgresql+asyncpg://", 1)
    return raw


# ===== Pydantic settings ======================================================


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=None,  # .env is handled by _load_env()
        extra="ignore",
        populate_by_name=True,
    )

    env: str = Field(default="dev", alias="ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    database_url: str = Field(default="", alias="DATABASE_URL")

    # sessions
    jwt_secret_key: str = Field(default=DEFAULT_JWT_SECRET, alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    session_ttl_days: int = Field(default=1, alias="SESSION_TTL_DAYS", ge=1)
    remember_me_ttl_days: int = Field(default=30, alias="REMEMBER_ME_TTL_DAYS", ge=1)

    # CORS
    cors_origins: str | List[str] = Field(default="*", alias="CORS_ORIGINS")

    # contacts / messages
    display_timezone: str = Field(default="UTC", alias="DISPLAY_TIMEZONE")
    default_page_size: int = Field(default=50, alias="DEFAULT_PAGE_SIZE", ge=1)
    max_page_size: int = Field(default=200, alias="MAX_PAGE_SIZE", ge=1)
    friend_code_length: int = Field(default=8, alias="FRIEND_CODE_LENGTH", ge=4)
    friend_code_max_attempts: int = Field(default=20, alias="FRIEND_CODE_MAX_ATTEMPTS", ge=1)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors(cls, v):
        if v is None:
            return []
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return []

    @field_validator("display_timezone")
    @classmethod
    def _check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone '{v}'") from exc
        return v

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.display_timezone)


@lru_cache()
def get_settings() -> Settings:
    """
    Public factory used across the app.
    Loads .env files and normalizes DATABASE_URL.
    """
    _load_env()
    s = Settings()

    data = s.model_dump()
    data["database_url"] = _normalize_database_url(data["database_url"])

    env_name = str(data.get("env") or "").lower()
    if env_name == "prod" and data.get("jwt_secret_key") == DEFAULT_JWT_SECRET:
        raise RuntimeError("JWT_SECRET_KEY must be set in prod")

    return Settings(**data)


__all__ = ["Settings", "get_settings"]
