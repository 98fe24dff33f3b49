"""Database connection management."""

import logging
import os
import threading
from contextlib import contextmanager
from typing import Any, Dict, Generator

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

logger = logging.getLogger(__name__)


class DatabaseConfig:
    """Connection settings resolved from a postgres config dict."""

    def __init__(self, config: Dict[str, Any]) -> None:
        self.host = config.get("host") or "localhost"
        self.port = config.get("port") or 5432
        self.database = config.get("database") or "storyline"
        self.user = config.get("user") or "storyline"
        self.pool_max_size = config.get("pool_max_size") or 10
        self.connect_timeout = config.get("connect_timeout") or 10

        password_env = config.get("password_env")
        if password_env and not config.get("password"):
            self.password = os.environ.get(password_env, "")
        else:
            self.password = config.get("password") or ""

    @property
    def conninfo(self) -> str:
        """libpq connection string; values are quoted by psycopg."""
        return make_conninfo(
            host=self.host,
            port=self.port,
            dbname=self.database,
            user=self.user,
            password=self.password or None,
            connect_timeout=self.connect_timeout,
            application_name="storyline",
        )


_pools: Dict[str, ConnectionPool] = {}
_pools_lock = threading.Lock()


def get_connection_pool(config: Dict[str, Any]) -> ConnectionPool:
    """Shared pool for this connection string, created on first use."""
    db_config = DatabaseConfig(config)
    key = db_config.conninfo
    with _pools_lock:
        pool = _pools.get(key)
        if pool is None:
            logger.debug("Opening connection pool to %s/%s", db_config.host, db_config.database)
            pool = ConnectionPool(
                key,
                min_size=1,
                max_size=db_config.pool_max_size,
                kwargs={"row_factory": dict_row},
                open=True,
            )
            _pools[key] = pool
        return pool


def close_connection_pool() -> None:
    """Close every open pool."""
    with _pools_lock:
        for pool in _pools.values():
            pool.close()
        _pools.clear()


@contextmanager
def get_connection(config: Dict[str, Any]) -> Generator[psycopg.Connection, None, None]:
    """Get a database connection from the pool."""
    with get_connection_pool(config).connection() as conn:
        yield conn
