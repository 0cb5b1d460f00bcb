"""Storage adapters for the Occupational Health Insight Engine.

This module contains storage adapters that implement the clinical storage
ports over DuckDB and PostgreSQL.
"""

from occhealth.adapters.storage.duckdb_adapter import DuckDBAdapter
from occhealth.adapters.storage.postgresql_adapter import PostgreSQLAdapter

__all__ = ["DuckDBAdapter", "PostgreSQLAdapter"]
