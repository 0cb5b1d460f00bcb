"""Application Settings.

Combines the storage configuration from the configuration manager with the
engine's own settings read from OH_* environment variables.
"""

import os
from typing import Optional

from occhealth.infrastructure.config_manager import DatabaseConfig, get_database_config

APP_NAME = "Occupational Health Insight Engine"
APP_VERSION = "1.0.0"

# Seconds allowed for each clinical domain fetch
DEFAULT_DOMAIN_FETCH_TIMEOUT = 5.0

DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://localhost:5173"


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application settings loaded from the environment.

    Attributes:
        app_name: Display name used by the API and CLI
        log_level: Root log level (DEBUG, INFO, ...)
        json_logs: Emit structured JSON log lines
        domain_fetch_timeout: Seconds allowed per domain fetch
        cors_origins: Origins allowed to call the dashboard API
    """

    def __init__(self):
        self._db_config: Optional[DatabaseConfig] = None

        self.app_name = os.getenv("OH_APP_NAME", APP_NAME)
        self.log_level = os.getenv("OH_LOG_LEVEL", "INFO").upper()
        self.json_logs = _as_bool(os.getenv("OH_JSON_LOGS", "false"))
        self.domain_fetch_timeout = float(
            os.getenv("OH_DOMAIN_FETCH_TIMEOUT", str(DEFAULT_DOMAIN_FETCH_TIMEOUT))
        )
        self.cors_origins = [
            origin.strip()
            for origin in os.getenv("OH_CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(",")
            if origin.strip()
        ]

    @property
    def db_config(self) -> DatabaseConfig:
        """Database configuration, loaded lazily on first access."""
        if self._db_config is None:
            self._db_config = get_database_config()
        return self._db_config


# Global settings instance
settings = Settings()
