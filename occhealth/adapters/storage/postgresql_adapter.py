"""PostgreSQL Storage Adapter.

This adapter implements the clinical storage ports over the clinic's
PostgreSQL database, where the live occupational-health records are kept.

Architecture:
    - Implements ClinicalStoragePort (Hexagonal Architecture)
    - Isolated from the domain core - only depends on ports and models
    - Connections come from a psycopg2 ThreadedConnectionPool created
      lazily on first use; every call borrows a connection and returns it,
      so concurrent domain fetches from worker threads are safe
    - psycopg2.pool.PoolError subclasses psycopg2.Error, so pool
      exhaustion surfaces as a StorageError like any driver error
"""

import logging
from typing import Any, Optional

import psycopg2
from psycopg2 import pool

from occhealth.adapters.storage.sql_storage import SQLClinicalStorage
from occhealth.domain.ports import StorageError
from occhealth.infrastructure.config_manager import DatabaseConfig

logger = logging.getLogger(__name__)


class PostgreSQLAdapter(SQLClinicalStorage):
    """PostgreSQL implementation of the clinical storage ports.

    Parameters:
        db_config: DatabaseConfig from configuration manager (preferred)
        connection_string: Full PostgreSQL connection string
        pool_min_size: Minimum pooled connections
        pool_max_size: Maximum pooled connections

    Example Usage:
        ```python
        from occhealth.infrastructure.config_manager import get_database_config

        adapter = PostgreSQLAdapter(db_config=get_database_config())
        identity = adapter.get_report_identity("RPT-001")
        adapter.close()
        ```
    """

    dialect = "postgresql"
    placeholder = "%s"

    def __init__(
        self,
        db_config: Optional[DatabaseConfig] = None,
        connection_string: Optional[str] = None,
        pool_min_size: int = 1,
        pool_max_size: int = 10,
    ):
        """Initialize PostgreSQL adapter.

        Priority order: db_config > connection_string.

        Raises:
            StorageError: If no usable connection settings are given
        """
        self._connection_pool: Optional[pool.ThreadedConnectionPool] = None

        if db_config:
            if db_config.db_type != "postgresql":
                raise StorageError(
                    f"DatabaseConfig type '{db_config.db_type}' does not match PostgreSQL adapter",
                    operation="__init__"
                )
            try:
                dsn = db_config.get_connection_string()
            except ValueError as e:
                raise StorageError(str(e), operation="__init__")
            self.pool_min_size = db_config.pool_min_size
            self.pool_max_size = db_config.pool_max_size
        elif connection_string:
            dsn = connection_string
            self.pool_min_size = pool_min_size
            self.pool_max_size = pool_max_size
        else:
            raise StorageError(
                "PostgreSQL adapter requires either db_config or connection_string",
                operation="__init__"
            )

        self.connection_params = {"dsn": dsn}

    def _get_connection_pool(self) -> pool.ThreadedConnectionPool:
        """Get or create the PostgreSQL connection pool.

        Raises:
            StorageError: If the pool cannot be created
        """
        if self._connection_pool is None:
            try:
                self._connection_pool = pool.ThreadedConnectionPool(
                    minconn=self.pool_min_size,
                    maxconn=self.pool_max_size,
                    **self.connection_params
                )
                logger.info("Created PostgreSQL connection pool")
            except psycopg2.Error as e:
                raise StorageError(
                    f"Failed to create PostgreSQL connection pool: {str(e)}",
                    operation="connect"
                )
        return self._connection_pool

    def _get_connection(self):
        """Borrow a connection from the pool.

        Raises:
            StorageError: If no connection can be obtained
        """
        try:
            return self._get_connection_pool().getconn()
        except psycopg2.Error as e:
            raise StorageError(
                f"Failed to get connection from pool: {str(e)}",
                operation="get_connection"
            )

    def _return_connection(self, conn) -> None:
        try:
            self._get_connection_pool().putconn(conn)
        except psycopg2.Error as e:
            logger.warning(f"Error returning connection to pool: {str(e)}")

    def _fetch_all(self, sql: str, params: Optional[list] = None) -> list[dict[str, Any]]:
        conn = self._get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.execute(sql, params)
                columns = [column[0] for column in cursor.description or []]
                rows = [dict(zip(columns, row)) for row in cursor.fetchall()]
            conn.rollback()
            return rows
        except psycopg2.Error as e:
            conn.rollback()
            raise StorageError(f"PostgreSQL query failed: {str(e)}", operation="query")
        finally:
            self._return_connection(conn)

    def _execute(self, statements: list[tuple[str, Optional[list]]]) -> None:
        conn = self._get_connection()
        try:
            with conn.cursor() as cursor:
                for sql, params in statements:
                    cursor.execute(sql, params)
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            raise StorageError(f"PostgreSQL write failed: {str(e)}", operation="execute")
        finally:
            self._return_connection(conn)

    def close(self) -> None:
        """Close storage connection pool and release resources."""
        if self._connection_pool is not None:
            try:
                self._connection_pool.closeall()
                logger.info("Closed PostgreSQL connection pool")
            except psycopg2.Error as e:
                logger.warning(f"Error closing connection pool: {str(e)}")
            finally:
                self._connection_pool = None
