"""Registry core configuration using pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import ClassVar, Literal
from urllib.parse import urlencode

from pydantic import Field, PositiveFloat, PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine.url import make_url

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_DB_PATH = PROJECT_ROOT / "var" / "data" / "registry.db"


class RegistrySettings(BaseSettings):
    """Validated settings for the registry metadata core."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="REGISTRY_CORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy URL of the metadata store. Defaults to a SQLite file under var/data.",
    )
    database_timeout_seconds: PositiveFloat = Field(
        default=30.0,
        description="How long a transaction waits on a locked store before failing as unavailable.",
    )
    pool_timeout_seconds: PositiveFloat = Field(
        default=30.0,
        description="How long a caller waits for a pooled connection.",
    )
    echo_sql: bool = Field(default=False, description="Log emitted SQL statements.")
    default_visibility: Literal["public", "private"] = Field(
        default="public",
        description="Visibility assigned to packages created without an explicit value.",
    )
    search_default_limit: PositiveInt = Field(
        default=20,
        description="Page size used when a search does not specify a limit.",
    )
    search_max_limit: PositiveInt = Field(
        default=100,
        description="Largest page size a search may request.",
    )
    summary_max_days: PositiveInt = Field(
        default=366,
        description="Widest day range a download summary may cover.",
    )
    log_level: Literal["critical", "error", "warning", "info", "debug", "trace"] = Field(
        default="info",
        description="Log level for the registry core.",
    )

    def resolved_database_url(self) -> str:
        return resolve_database_url(self.database_url)


def resolve_database_url(raw_url: str | None) -> str:
    if not raw_url:
        DEFAULT_DB_PATH.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{DEFAULT_DB_PATH.as_posix()}"

    url = make_url(raw_url)
    if not url.drivername.startswith("sqlite") or url.database in (None, "", ":memory:"):
        return raw_url
    db_path = Path(url.database)
    if not db_path.is_absolute():
        db_path = PROJECT_ROOT / db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    if db_path.as_posix() == url.database:
        return raw_url
    resolved = f"{url.drivername}:///{db_path.as_posix()}"
    if url.query:
        resolved += "?" + urlencode(url.query, doseq=True)
    return resolved


@lru_cache()
def get_settings() -> RegistrySettings:
    """Return memoized registry settings."""

    return RegistrySettings()
