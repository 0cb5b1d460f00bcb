"""DuckDB Storage Adapter.

This adapter implements the clinical storage ports over DuckDB, an
in-process analytical database. It is the default backend: an in-memory
database for tests and local use, or a database file for a persistent
local copy of the clinical records.

Architecture:
    - Implements ClinicalStoragePort (Hexagonal Architecture)
    - Isolated from the domain core - only depends on ports and models
    - One shared connection, opened lazily; every call runs on its own
      cursor so concurrent domain fetches from worker threads are safe
"""

import logging
import threading
from pathlib import Path
from typing import Any, Optional

import duckdb

from occhealth.adapters.storage.sql_storage import SQLClinicalStorage
from occhealth.domain.ports import StorageError
from occhealth.infrastructure.config_manager import DatabaseConfig

logger = logging.getLogger(__name__)


class DuckDBAdapter(SQLClinicalStorage):
    """DuckDB implementation of the clinical storage ports.

    Parameters:
        db_config: DatabaseConfig from configuration manager (preferred)
        db_path: Path to DuckDB database file (or ':memory:' for in-memory)

    Example Usage:
        ```python
        from occhealth.infrastructure.config_manager import get_database_config

        adapter = DuckDBAdapter(db_config=get_database_config())
        result = adapter.initialize_schema()
        if result.is_success():
            record = adapter.get_latest_record(ClinicalDomain.VITALS, "EMP-001")
        ```
    """

    dialect = "duckdb"
    placeholder = "?"

    def __init__(
        self,
        db_config: Optional[DatabaseConfig] = None,
        db_path: Optional[str] = None,
    ):
        """Initialize DuckDB adapter.

        If both db_config and db_path are provided, db_config takes
        precedence. If neither is provided, an in-memory database is used.

        Raises:
            StorageError: If db_config is not a DuckDB configuration, or the
                          database directory does not exist
        """
        if db_config:
            if db_config.db_type != "duckdb":
                raise StorageError(
                    f"DatabaseConfig type '{db_config.db_type}' does not match DuckDB adapter",
                    operation="__init__"
                )
            self.db_path = db_config.db_path or ":memory:"
        else:
            self.db_path = db_path or ":memory:"

        if self.db_path != ":memory:":
            db_path_obj = Path(self.db_path)
            if not db_path_obj.parent.exists():
                raise StorageError(
                    f"Database directory does not exist: {db_path_obj.parent}",
                    operation="__init__"
                )

        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._connection_lock = threading.Lock()

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        """Get or create the shared DuckDB connection.

        Raises:
            StorageError: If the database cannot be opened
        """
        with self._connection_lock:
            if self._connection is None:
                try:
                    self._connection = duckdb.connect(self.db_path)
                    logger.info(f"Connected to DuckDB database: {self.db_path}")
                except duckdb.Error as e:
                    raise StorageError(
                        f"Failed to connect to DuckDB: {str(e)}",
                        operation="connect",
                        details={"db_path": self.db_path}
                    )
            return self._connection

    def _fetch_all(self, sql: str, params: Optional[list] = None) -> list[dict[str, Any]]:
        cursor = self._get_connection().cursor()
        try:
            cursor.execute(sql, params or [])
            columns = [column[0] for column in cursor.description or []]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]
        except duckdb.Error as e:
            raise StorageError(f"DuckDB query failed: {str(e)}", operation="query")
        finally:
            cursor.close()

    def _execute(self, statements: list[tuple[str, Optional[list]]]) -> None:
        cursor = self._get_connection().cursor()
        try:
            cursor.execute("BEGIN TRANSACTION")
            for sql, params in statements:
                cursor.execute(sql, params or [])
            cursor.execute("COMMIT")
        except duckdb.Error as e:
            cursor.execute("ROLLBACK")
            raise StorageError(f"DuckDB write failed: {str(e)}", operation="execute")
        finally:
            cursor.close()

    def close(self) -> None:
        """Close storage connection and release resources."""
        with self._connection_lock:
            if self._connection is not None:
                try:
                    self._connection.close()
                    logger.info("Closed DuckDB connection")
                except duckdb.Error as e:
                    logger.warning(f"Error closing connection: {str(e)}")
                finally:
                    self._connection = None
