"""Database connections for DB-backed scenarios."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Connection, Engine, make_url
from sqlalchemy.pool import NullPool

from rigger.core.errors import ConfigurationError
from rigger.core.models import ResourceKind
from rigger.resources.base import ResourceFactory

if TYPE_CHECKING:
    from rigger.config.schema import DatabaseConfig, ProfileConfig

logger = logging.getLogger(__name__)

# Backends whose DBAPI drivers accept a connect_timeout argument
_CONNECT_TIMEOUT_BACKENDS = {"postgresql", "mysql", "mariadb"}


class DbConnection:
    """An open SQLAlchemy connection plus the engine that owns it."""

    def __init__(self, engine: Engine, connection: Connection):
        self.engine = engine
        self.connection = connection

    def is_open(self) -> bool:
        return not self.connection.closed and not self.connection.invalidated

    def query(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        """Run a SELECT and return rows as dictionaries."""
        result = self.connection.execute(text(sql), dict(params or {}))
        rows = [dict(row) for row in result.mappings()]
        logger.debug(f"Query returned {len(rows)} rows")
        return rows

    def execute(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> int:
        """Run an INSERT/UPDATE/DELETE and return the affected row count."""
        result = self.connection.execute(text(sql), dict(params or {}))
        return result.rowcount

    def commit(self) -> None:
        self.connection.commit()

    def rollback(self) -> None:
        self.connection.rollback()

    def close(self) -> None:
        try:
            self.connection.close()
        finally:
            self.engine.dispose()


def build_url(profile: ProfileConfig) -> URL:
    """Build the SQLAlchemy URL for a profile.

    db_driver replaces the URL's driver name (e.g. "postgresql+psycopg2");
    db_username/db_password override credentials embedded in db_url.

    Raises:
        ConfigurationError: If the profile has no db_url
    """
    if not profile.db_url:
        raise ConfigurationError(f"No db_url configured for profile '{profile.name}'")

    url = make_url(profile.db_url)
    if profile.db_driver:
        url = url.set(drivername=profile.db_driver)
    if profile.db_username:
        url = url.set(username=profile.db_username)
    if profile.db_password:
        url = url.set(password=profile.db_password)
    return url


class DatabaseConnectionFactory(ResourceFactory):
    """Opens one database connection per worker."""

    kind = ResourceKind.DB_CONNECTION

    def __init__(self, config: DatabaseConfig):
        self.config = config

    def create(self, profile: ProfileConfig) -> DbConnection:
        url = build_url(profile)

        connect_args = {}
        if url.get_backend_name() in _CONNECT_TIMEOUT_BACKENDS:
            connect_args["connect_timeout"] = self.config.connect_timeout

        # Loads the dialect and DBAPI driver; fails fast if it is not installed
        engine = create_engine(url, poolclass=NullPool, connect_args=connect_args)
        try:
            connection = engine.connect()
        except Exception:
            engine.dispose()
            raise

        if self.config.autocommit:
            connection = connection.execution_options(isolation_level="AUTOCOMMIT")

        logger.info(f"Connected to {url.get_backend_name()} database")
        return DbConnection(engine, connection)

    def is_valid(self, handle: DbConnection) -> bool:
        return handle.is_open()

    def close(self, handle: DbConnection) -> None:
        handle.close()
