"""Configuration Manager for the clinical records store.

Loads the storage backend settings (DuckDB file or in-memory database, or a
PostgreSQL server) from environment variables or a JSON file, validated with
Pydantic. Credentials are held as SecretStr so they never appear in logs,
reprs or error messages.

Architecture:
    - Infrastructure layer, isolated from the domain core
    - Environment variables use the OH_DB_ prefix
    - A .env file at the project root is loaded with python-dotenv
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional
from urllib.parse import parse_qs, quote_plus, unquote, urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

logger = logging.getLogger(__name__)

SUPPORTED_DB_TYPES = ("duckdb", "postgresql")

ENV_FILE = Path(__file__).parent.parent.parent / ".env"


class DatabaseConfig(BaseModel):
    """Connection settings for the clinical records store.

    Parameters:
        db_type: "duckdb" or "postgresql"
        db_path: DuckDB database file, or ":memory:"
        host: PostgreSQL host
        port: PostgreSQL port
        database: PostgreSQL database name
        username: PostgreSQL user
        password: PostgreSQL password (SecretStr - never logged)
        connection_string: Full PostgreSQL URL (SecretStr - never logged)
        ssl_mode: PostgreSQL sslmode (require, prefer, disable)
        pool_min_size: Minimum pooled PostgreSQL connections
        pool_max_size: Maximum pooled PostgreSQL connections
    """

    db_type: str = Field(default="duckdb", description="Storage backend (duckdb, postgresql)")
    db_path: Optional[str] = Field(None, description="Path to DuckDB file")
    host: Optional[str] = Field(None, description="Database host")
    port: Optional[int] = Field(None, description="Database port")
    database: Optional[str] = Field(None, description="Database name")
    username: Optional[str] = Field(None, description="Database username")
    password: Optional[SecretStr] = Field(None, description="Database password (secret)")
    connection_string: Optional[SecretStr] = Field(None, description="Full connection string (secret)")
    ssl_mode: Optional[str] = Field(None, description="SSL mode (require, prefer, disable)")
    pool_min_size: int = Field(default=1, ge=1, description="Minimum pool size")
    pool_max_size: int = Field(default=10, ge=1, description="Maximum pool size")

    @field_validator("db_type")
    @classmethod
    def validate_db_type(cls, v: str) -> str:
        if v.lower() not in SUPPORTED_DB_TYPES:
            raise ValueError(f"Unsupported database type: {v}. Supported: {list(SUPPORTED_DB_TYPES)}")
        return v.lower()

    @field_validator("db_path")
    @classmethod
    def validate_db_path(cls, v: Optional[str]) -> Optional[str]:
        """Check the directory of a DuckDB file exists (the file may not yet)."""
        if v is None or v == ":memory:":
            return v

        db_path_obj = Path(v)
        if not db_path_obj.parent.exists():
            raise ValueError(f"Database directory does not exist: {db_path_obj.parent}")
        return str(db_path_obj)

    @model_validator(mode="after")
    def check_pool_bounds(self) -> "DatabaseConfig":
        if self.pool_min_size > self.pool_max_size:
            raise ValueError("pool_min_size must not exceed pool_max_size")
        return self

    @model_validator(mode="after")
    def sync_connection_string_and_fields(self) -> "DatabaseConfig":
        """Keep the PostgreSQL URL and the individual fields consistent.

        A supplied connection string always wins and populates the fields; a
        URL is built from the fields when only they are supplied.
        """
        if self.db_type != "postgresql":
            return self

        if self.connection_string:
            parsed = parse_postgresql_url(self.connection_string.get_secret_value())
            for name in ("host", "port", "database", "username", "ssl_mode"):
                if parsed.get(name):
                    setattr(self, name, parsed[name])
            if parsed.get("password"):
                self.password = SecretStr(parsed["password"])
        elif self.host and self.database:
            self.connection_string = SecretStr(self._build_url())
        return self

    def _build_url(self) -> str:
        password_part = ""
        if self.password:
            password_part = f":{quote_plus(self.password.get_secret_value())}"
        username_part = quote_plus(self.username) if self.username else ""
        ssl_part = f"?sslmode={self.ssl_mode}" if self.ssl_mode else ""
        return (
            f"postgresql://{username_part}{password_part}@{self.host}:"
            f"{self.port or 5432}/{self.database}{ssl_part}"
        )

    def get_connection_string(self) -> str:
        """Get the DuckDB path or the PostgreSQL URL.

        Raises:
            ValueError: If PostgreSQL is selected without host and database
        """
        if self.db_type == "duckdb":
            return self.db_path or ":memory:"

        if self.connection_string:
            return self.connection_string.get_secret_value()
        raise ValueError("postgresql requires a connection string or host and database")


def parse_postgresql_url(conn_str: str) -> dict[str, Any]:
    """Split a postgresql:// (or postgres://) URL into its parts.

    Raises:
        ValueError: If the scheme is not postgresql/postgres
    """
    parsed = urlparse(conn_str)
    if parsed.scheme not in ("postgresql", "postgres"):
        raise ValueError(f"Unsupported connection string scheme: {parsed.scheme}")

    result = {
        "host": parsed.hostname,
        "port": parsed.port,
        "database": parsed.path.lstrip("/") if parsed.path else None,
        "username": unquote(parsed.username) if parsed.username else None,
        "password": unquote(parsed.password) if parsed.password else None,
    }
    query_params = parse_qs(parsed.query)
    if "sslmode" in query_params:
        result["ssl_mode"] = query_params["sslmode"][0]
    return result


class ConfigManager:
    """Source of validated storage configuration.

    Example Usage:
        ```python
        config = ConfigManager.from_environment()
        db_config = config.get_database_config()

        config = ConfigManager.from_file("occhealth.json")
        db_config = config.get_database_config()
        ```
    """

    def __init__(self, config_data: dict[str, Any]):
        self._config_data = config_data
        self._database_config: Optional[DatabaseConfig] = None

    @classmethod
    def from_environment(cls) -> "ConfigManager":
        """Load configuration from environment variables.

        Environment Variables:
            - OH_DB_TYPE: duckdb (default) or postgresql
            - OH_DB_PATH: DuckDB file path (default in-memory)
            - OH_DB_HOST / OH_DB_PORT / OH_DB_NAME: PostgreSQL server
            - OH_DB_USER / OH_DB_PASSWORD: PostgreSQL credentials
            - OH_DB_CONNECTION_STRING: Full PostgreSQL URL
            - OH_DB_SSL_MODE: PostgreSQL sslmode
            - OH_DB_POOL_MIN / OH_DB_POOL_MAX: Pool bounds

        Returns:
            ConfigManager instance
        """
        if ENV_FILE.exists():
            load_dotenv(ENV_FILE)
            logger.debug(f"Loaded environment variables from {ENV_FILE}")

        database: dict[str, Any] = {
            "db_type": os.getenv("OH_DB_TYPE", "duckdb"),
            "db_path": os.getenv("OH_DB_PATH"),
            "host": os.getenv("OH_DB_HOST"),
            "port": int(os.getenv("OH_DB_PORT")) if os.getenv("OH_DB_PORT") else None,
            "database": os.getenv("OH_DB_NAME"),
            "username": os.getenv("OH_DB_USER"),
            "password": os.getenv("OH_DB_PASSWORD"),
            "connection_string": os.getenv("OH_DB_CONNECTION_STRING"),
            "ssl_mode": os.getenv("OH_DB_SSL_MODE"),
        }
        if os.getenv("OH_DB_POOL_MIN"):
            database["pool_min_size"] = int(os.getenv("OH_DB_POOL_MIN"))
        if os.getenv("OH_DB_POOL_MAX"):
            database["pool_max_size"] = int(os.getenv("OH_DB_POOL_MAX"))

        return cls({"database": database})

    @classmethod
    def from_file(cls, config_path: str) -> "ConfigManager":
        """Load configuration from a JSON file with a "database" object.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file is not valid JSON
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        if config_file.stat().st_mode & 0o077 != 0:
            logger.warning(
                f"Configuration file has overly permissive permissions: {config_path}. "
                "Consider setting to 600 for credential files."
            )

        try:
            with open(config_file, "r") as f:
                config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {str(e)}")

        return cls(config_data)

    def get_database_config(self) -> DatabaseConfig:
        """Get the validated database configuration (built once)."""
        if self._database_config is None:
            db_config_data = {
                key: value
                for key, value in self._config_data.get("database", {}).items()
                if value is not None
            }
            for secret in ("password", "connection_string"):
                if db_config_data.get(secret):
                    db_config_data[secret] = SecretStr(db_config_data[secret])
            self._database_config = DatabaseConfig(**db_config_data)
        return self._database_config

    def get(self, key: str, default: Any = None) -> Any:
        """Get a raw configuration value by dotted key (e.g. "database.host")."""
        value: Any = self._config_data
        for part in key.split("."):
            if not isinstance(value, dict):
                return default
            value = value.get(part)
        return value if value is not None else default


def get_database_config() -> DatabaseConfig:
    """Database configuration from the environment (DuckDB in-memory by default)."""
    return ConfigManager.from_environment().get_database_config()
