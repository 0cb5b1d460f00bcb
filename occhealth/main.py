"""Application wiring for the Occupational Health Insight Engine.

Creates the configured storage adapter for the dashboard API and the CLI.
"""

import logging
from typing import Optional

from occhealth.adapters.storage import DuckDBAdapter, PostgreSQLAdapter
from occhealth.domain.ports import ClinicalStoragePort
from occhealth.infrastructure.config_manager import DatabaseConfig, get_database_config

logger = logging.getLogger(__name__)


def create_storage_adapter(db_config: Optional[DatabaseConfig] = None) -> ClinicalStoragePort:
    """Create storage adapter based on configuration.

    Parameters:
        db_config: Database configuration; read from the environment when None

    Returns:
        ClinicalStoragePort: Configured storage adapter instance

    Raises:
        ValueError: If database type is unsupported
    """
    db_config = db_config or get_database_config()

    if db_config.db_type == "duckdb":
        logger.info(f"Initializing DuckDB adapter with path: {db_config.db_path or ':memory:'}")
        return DuckDBAdapter(db_config=db_config)
    elif db_config.db_type == "postgresql":
        logger.info(f"Initializing PostgreSQL adapter with host: {db_config.host}")
        return PostgreSQLAdapter(db_config=db_config)
    else:
        raise ValueError(f"Unsupported database type: {db_config.db_type}")
