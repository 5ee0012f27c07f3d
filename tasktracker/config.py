from functools import lru_cache
from pathlib import Path
from typing import Annotated, List
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

# Load environment variables from repo root and the working directory (if present).
REPO_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(REPO_ROOT / ".env")
load_dotenv(Path.cwd() / ".env")

SESSION_COOKIE_NAME = "tasktracker.session_token"


def _split_csv(value):
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class Settings(BaseSettings):
    """Application settings read from the environment.

    Every value is validated when the settings object is built, so a missing
    or malformed variable stops the process before the server starts.
    """

    model_config = SettingsConfigDict(extra="ignore", case_sensitive=False)

    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    environment: str = Field(default="development", pattern="^(development|production|test)$")
    log_level: str = "INFO"

    database_url: str
    auth_secret: str = Field(min_length=32)
    auth_url: str
    auth_trusted_origins: Annotated[List[str], NoDecode] = Field(min_length=1)
    cors_allow_origins: Annotated[List[str], NoDecode] = Field(min_length=1)

    session_expires_in: int = Field(default=60 * 60 * 24 * 7, ge=60)
    shutdown_timeout: float = Field(default=30.0, gt=0)
    body_limit_bytes: int = Field(default=50 * 1024, ge=1)

    @field_validator("database_url")
    @classmethod
    def _check_database_url(cls, value: str) -> str:
        try:
            make_url(value)
        except ArgumentError as exc:
            raise ValueError(f"invalid database URL: {exc}") from exc
        return value

    @field_validator("auth_url")
    @classmethod
    def _check_auth_url(cls, value: str) -> str:
        if not _is_http_url(value):
            raise ValueError("must be an http(s) URL")
        return value.rstrip("/")

    @field_validator("auth_trusted_origins", mode="before")
    @classmethod
    def _parse_trusted_origins(cls, value):
        origins = _split_csv(value)
        for origin in origins:
            if not _is_http_url(origin):
                raise ValueError(f"{origin!r} is not an http(s) URL")
        return [origin.rstrip("/") for origin in origins]

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, value):
        return _split_csv(value)

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def secure_cookies(self) -> bool:
        return self.auth_url.startswith("https://")

    @property
    def is_test(self) -> bool:
        return self.environment == "test"


@lru_cache
def get_settings() -> Settings:
    return Settings()
