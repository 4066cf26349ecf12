"""Database engine and transactional session helpers."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Callable, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from registry_core.config.settings import RegistrySettings, get_settings
from registry_core.service.errors import UnavailableError

from .base import Base
from . import models  # noqa: F401  # ensure models are imported for metadata

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

# Execution option marking a connection whose transaction will write.
WRITE_OPTION = "registry_write"


def _is_memory_sqlite(url: str) -> bool:
    parsed = make_url(url)
    return parsed.drivername.startswith("sqlite") and parsed.database in (None, "", ":memory:")


def _install_sqlite_hooks(engine: Engine, *, timeout_seconds: float, file_backed: bool) -> None:
    busy_timeout_ms = int(timeout_seconds * 1000)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        # Hand transaction control to the "begin" hook below.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute(f"PRAGMA busy_timeout = {busy_timeout_ms}")
            cursor.execute("PRAGMA foreign_keys = ON")
            if file_backed:
                cursor.execute("PRAGMA journal_mode = WAL")
        finally:
            cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Connection) -> None:
        if conn.get_execution_options().get(WRITE_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN DEFERRED")


def create_registry_engine(
    url: str,
    *,
    timeout_seconds: float = 30.0,
    pool_timeout_seconds: float = 30.0,
    echo: bool = False,
) -> Engine:
    if url.startswith("sqlite"):
        memory = _is_memory_sqlite(url)
        kwargs: dict[str, object] = {
            "connect_args": {"check_same_thread": False, "timeout": timeout_seconds},
        }
        if memory:
            kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_timeout"] = pool_timeout_seconds
        engine = create_engine(url, echo=echo, future=True, **kwargs)
        _install_sqlite_hooks(engine, timeout_seconds=timeout_seconds, file_backed=not memory)
        return engine

    return create_engine(
        url,
        echo=echo,
        future=True,
        pool_pre_ping=True,
        pool_timeout=pool_timeout_seconds,
    )


class Database:
    """Owns the engine and hands out one transaction per unit of work."""

    def __init__(
        self,
        url: str,
        *,
        timeout_seconds: float = 30.0,
        pool_timeout_seconds: float = 30.0,
        echo: bool = False,
    ) -> None:
        self.url = url
        self.engine = create_registry_engine(
            url,
            timeout_seconds=timeout_seconds,
            pool_timeout_seconds=pool_timeout_seconds,
            echo=echo,
        )
        self._session_factory = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            future=True,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: RegistrySettings) -> "Database":
        return cls(
            settings.resolved_database_url(),
            timeout_seconds=settings.database_timeout_seconds,
            pool_timeout_seconds=settings.pool_timeout_seconds,
            echo=settings.echo_sql,
        )

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def create_all(self) -> None:
        """Create tables directly from metadata. Deployments use Alembic instead."""

        Base.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    def run_in_session(self, fn: Callable[[Session], T], *, write: bool = False) -> T:
        """Run ``fn`` inside a single transaction.

        The transaction commits when ``fn`` returns and rolls back on any
        exception. Storage failures that a caller can retry are re-raised as
        :class:`UnavailableError` once the rollback has happened.
        """

        session: Session = self._session_factory()
        try:
            session.connection(execution_options={WRITE_OPTION: write})
            result = fn(session)
            session.commit()
            return result
        except (OperationalError, PoolTimeoutError) as exc:
            session.rollback()
            LOGGER.warning("Registry storage unavailable: %s", exc)
            raise UnavailableError() from exc
        except DBAPIError as exc:
            session.rollback()
            if exc.connection_invalidated:
                LOGGER.warning("Registry storage connection lost: %s", exc)
                raise UnavailableError() from exc
            raise
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()


@lru_cache()
def get_database() -> Database:
    """Return the process-wide database built from settings."""

    return Database.from_settings(get_settings())


__all__ = [
    "Database",
    "WRITE_OPTION",
    "create_registry_engine",
    "get_database",
]
