from functools import lru_cache
from typing import Any
from urllib.parse import urlparse, urlunparse

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError


def _ensure_sqlalchemy_postgres_scheme(value: str) -> str:
    if not value.lower().startswith("postgres"):
        return value

    parsed = urlparse(value)
    scheme = parsed.scheme.lower()

    if scheme == "postgres":
        scheme = "postgresql"

    if scheme == "postgresql":
        scheme = "postgresql+psycopg"

    if scheme not in {"postgresql+psycopg", "postgresql+asyncpg"}:
        scheme = "postgresql+psycopg"

    return urlunparse(parsed._replace(scheme=scheme))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    debug: bool = Field(False, description="Echo SQL statements issued by the engine")
    environment: str = Field(
        default="development",
        description="Runtime environment (development|staging|production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum loguru level written to stderr",
    )
    rpc_endpoint: AnyHttpUrl = Field(
        ...,
        description="Starknet JSON-RPC endpoint polled for events",
    )
    rpc_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout applied to every JSON-RPC request",
        gt=0,
    )
    database_url: str = Field(
        ...,
        description="SQLAlchemy compatible database URL holding events, bets and block state",
    )
    database_pool_size: int = Field(
        default=5,
        description="Maximum number of pooled connections for server databases",
        ge=1,
    )
    sync_event_name: str = Field(
        default="EventTimeout",
        description="Name of the contract event whose selector filters event queries",
    )
    sync_poll_interval_seconds: float = Field(
        default=10.0,
        description="Idle time between two sync cycles",
        ge=0,
    )
    sync_events_chunk_size: int = Field(
        default=100,
        description="Page size requested from starknet_getEvents",
        ge=1,
    )
    sync_follow_continuation: bool = Field(
        default=True,
        description="Follow continuation tokens when a block holds more events than one page",
    )
    sync_max_pages_per_scan: int = Field(
        default=50,
        description="Upper bound on pages fetched for one (address, block) scan",
        ge=1,
    )
    sync_max_blocks_per_cycle: int | None = Field(
        default=None,
        description="Optional cap on blocks scanned per cycle (unbounded when unset)",
        ge=1,
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def _normalize_database_url(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        candidate = value.strip()
        if not candidate:
            raise ValueError("DATABASE_URL must not be empty")
        candidate = _ensure_sqlalchemy_postgres_scheme(candidate)
        try:
            make_url(candidate)
        except ArgumentError as exc:
            raise ValueError(f"DATABASE_URL is not a valid database URL: {exc}") from exc
        return candidate

    @field_validator("sync_event_name")
    @classmethod
    def _validate_event_name(cls, value: str) -> str:
        candidate = value.strip()
        if not candidate:
            raise ValueError("SYNC_EVENT_NAME must not be empty")
        if not candidate.isascii():
            raise ValueError("SYNC_EVENT_NAME must be an ASCII identifier")
        return candidate

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @property
    def rpc_url(self) -> str:
        return str(self.rpc_endpoint)


@lru_cache
def get_settings() -> Settings:
    return Settings()
