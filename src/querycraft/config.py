"""Connection configuration for the query builder.

Connections are described by a YAML file validated with Pydantic models:

1. Connections: named database settings (engine, credentials, table prefix)
2. Default connection: the connection builders use when none is passed

Configuration file location priority:
1. Explicit path passed to ConfigLoader
2. QUERYCRAFT_CONFIG environment variable
3. Standard location: ~/.querycraft/connections.yml
4. Empty configuration (if no config file found)

Example config file:
```yaml
version: "1.0"

connections:
  main:
    driver: mysql
    host: db.internal
    database: shop
    username: shop
    password: secret
    prefix: "cb_"

  local:
    driver: sqlite
    database: ./var/local.db
    options:
      sqlite_pragmas:
        journal_mode: WAL

default_connection: main
```
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .backend import DatabaseDriver, DatabaseEngine

if TYPE_CHECKING:
    from .connection import ConnectionRegistry

logger = logging.getLogger(__name__)

DEFAULT_PORTS: dict[DatabaseEngine, int] = {
    DatabaseEngine.MYSQL: 3306,
    DatabaseEngine.POSTGRESQL: 5432,
    DatabaseEngine.SQLSERVER: 1433,
}

# Factory opening a driver for a named connection
DriverFactory = Callable[[str, "ConnectionConfig"], DatabaseDriver]


# ===========================================================================
# Configuration Models
# ===========================================================================


class ConnectionConfig(BaseModel):
    """Settings for one database connection.

    Only the driver (engine) is always required. SQLite needs a database
    path; server engines need a host.
    """

    model_config = ConfigDict(populate_by_name=True)

    driver: DatabaseEngine = Field(
        default=DatabaseEngine.MYSQL,
        description="SQL dialect (mysql, postgresql, sqlite, sqlserver)",
    )
    database: str | None = Field(
        default=None,
        description="Database name, or file path / ':memory:' for SQLite",
    )
    host: str | None = Field(default=None, description="Database server host")
    port: int | None = Field(default=None, ge=1, le=65535, description="Database server port")
    username: str | None = Field(default=None, description="Database username")
    password: str | None = Field(default=None, description="Database password")
    charset: str | None = Field(default=None, description="Connection character set")
    search_path: str | None = Field(
        default=None,
        alias="schema",
        description="[PostgreSQL] Schema search path",
    )
    unix_socket: str | None = Field(default=None, description="[MySQL] Unix socket path")
    options: dict[str, Any] = Field(
        default_factory=dict,
        description="Driver-specific options (e.g., sqlite_pragmas)",
    )
    prefix: str | None = Field(
        default=None,
        description="Prefix added to every table name",
    )
    query_overwriting: bool = Field(
        default=False,
        description="Let repeated select/where/order calls replace earlier ones",
    )

    @field_validator("driver", mode="before")
    @classmethod
    def normalize_driver(cls, v: Any) -> Any:
        """Accept engine names case-insensitively, plus common aliases."""
        if isinstance(v, str):
            name = v.strip().lower()
            aliases = {"pgsql": "postgresql", "postgres": "postgresql", "mssql": "sqlserver"}
            return aliases.get(name, name)
        return v

    @model_validator(mode="after")
    def validate_engine_requirements(self) -> ConnectionConfig:
        """Validate required fields per engine and fill in default ports."""
        if self.driver == DatabaseEngine.SQLITE:
            if not self.database:
                raise ValueError("SQLite requires 'database' parameter")
        else:
            if not self.host and not self.unix_socket:
                raise ValueError(f"{self.driver.value} requires 'host' parameter")
            if self.port is None:
                self.port = DEFAULT_PORTS.get(self.driver)
        return self


class QueryCraftConfig(BaseModel):
    """Root configuration model.

    Validates the complete connections.yml structure with schema versioning.
    """

    version: str = Field(default="1.0", description="Configuration schema version")
    connections: dict[str, ConnectionConfig] = Field(
        default_factory=dict,
        description="Named connection definitions",
    )
    default_connection: str | None = Field(
        default=None,
        description="Connection used when a builder is created without one",
    )

    @field_validator("default_connection")
    @classmethod
    def validate_default_connection(cls, v: str | None, info: Any) -> str | None:
        """Validate that default_connection references an existing connection."""
        if v is not None:
            connections = info.data.get("connections", {})
            if v not in connections:
                raise ValueError(
                    f"default_connection '{v}' not found in connections. "
                    f"Available connections: {', '.join(connections.keys())}"
                )
        return v


# ===========================================================================
# Configuration Loader
# ===========================================================================


class ConfigLoader:
    """Loader for connection configuration from a YAML file.

    Usage:
        ```python
        loader = ConfigLoader()
        config = loader.load_config()
        registry = build_registry(config, driver_factory=open_pymysql)
        ```
    """

    ENV_VAR = "QUERYCRAFT_CONFIG"

    def __init__(self, config_path: str | Path | None = None):
        """Initialize config loader with optional explicit path.

        Args:
            config_path: Explicit path to config file (optional).
                If not provided, uses environment variable or standard location.
        """
        self._config: QueryCraftConfig | None = None
        self._explicit_path = Path(config_path) if config_path else None

    def get_config_path(self) -> Path | None:
        """Determine config file path using priority order.

        Returns:
            Path to config file, or None if file doesn't exist
        """
        if self._explicit_path:
            if self._explicit_path.exists():
                return self._explicit_path
            logger.warning(f"Explicit config path does not exist: {self._explicit_path}")
            return None

        env_path_str = os.getenv(self.ENV_VAR)
        if env_path_str:
            env_path = Path(env_path_str).expanduser()
            if env_path.exists():
                return env_path
            logger.warning(f"{self.ENV_VAR} path does not exist: {env_path}")
            return None

        standard_path = Path.home() / ".querycraft" / "connections.yml"
        if standard_path.exists():
            return standard_path

        return None

    def load_config(self) -> QueryCraftConfig:
        """Load and validate the configuration file.

        The result is cached for reuse.

        Returns:
            Validated QueryCraftConfig (empty if no config file found)

        Raises:
            ValueError: If the config file is invalid or fails validation
        """
        if self._config is not None:
            return self._config

        config_path = self.get_config_path()

        if config_path is None:
            logger.info("No connection config file found. Using empty configuration.")
            self._config = QueryCraftConfig()
            return self._config

        logger.info(f"Loading connection config from: {config_path}")

        try:
            with open(config_path, encoding="utf-8") as f:
                raw_config = yaml.safe_load(f)

            if not isinstance(raw_config, dict):
                raise ValueError("Config file must contain a YAML dictionary")

            config = QueryCraftConfig(**raw_config)
            logger.info(f"Loaded connection config: {len(config.connections)} connections")

            self._config = config
            return config

        except (yaml.YAMLError, ValueError) as e:
            raise ValueError(f"Failed to load connection config from {config_path}: {e}") from e


def build_registry(
    config: QueryCraftConfig,
    driver_factory: DriverFactory | None = None,
) -> ConnectionRegistry:
    """Open every configured connection and register it.

    SQLite connections are opened with the bundled sqlite3 driver. Other
    engines are opened through ``driver_factory``.

    Args:
        config: Loaded configuration
        driver_factory: Callable returning a driver for (name, config)

    Returns:
        Registry with the configured default connection selected

    Raises:
        ValueError: If a server connection is configured without a factory
    """
    from .connection import Connection, ConnectionRegistry
    from .sqlite_backend import SqliteDriver

    registry = ConnectionRegistry()
    for name, conn_config in config.connections.items():
        if driver_factory is not None:
            driver = driver_factory(name, conn_config)
        elif conn_config.driver == DatabaseEngine.SQLITE:
            driver = SqliteDriver.connect(conn_config)
        else:
            raise ValueError(
                f"Connection '{name}' uses {conn_config.driver.value}; "
                f"pass a driver_factory to open it"
            )
        registry.add(name, Connection(driver, conn_config))

    if config.default_connection:
        registry.set_default(config.default_connection)
    return registry
