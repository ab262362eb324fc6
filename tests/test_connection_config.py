"""Tests for connection configuration, connections and the registry."""

from __future__ import annotations

from pathlib import Path

import pytest
from conftest import FakeDriver, make_config
from pydantic import ValidationError

from querycraft import (
    ConfigLoader,
    Connection,
    ConnectionConfig,
    ConnectionRegistry,
    DatabaseEngine,
    DriverError,
    QueryBuilder,
    QueryCraftConfig,
    SqlConnectionError,
    SqliteDriver,
    build_registry,
)

# ============================================================================
# ConnectionConfig
# ============================================================================


class TestConnectionConfig:
    """Validation of one connection's settings."""

    def test_sqlite_requires_database(self) -> None:
        """SQLite connections need a database path."""
        with pytest.raises(ValidationError, match="database"):
            ConnectionConfig(driver="sqlite")

    def test_server_requires_host(self) -> None:
        """Server engines need a host."""
        with pytest.raises(ValidationError, match="host"):
            ConnectionConfig(driver="postgresql", database="shop")

    def test_unix_socket_replaces_host(self) -> None:
        """A unix socket is accepted instead of a host."""
        config = ConnectionConfig(driver="mysql", unix_socket="/run/mysqld.sock")
        assert config.port == 3306

    @pytest.mark.parametrize(
        ("name", "engine", "port"),
        [
            ("MySQL", DatabaseEngine.MYSQL, 3306),
            ("pgsql", DatabaseEngine.POSTGRESQL, 5432),
            ("postgres", DatabaseEngine.POSTGRESQL, 5432),
            ("mssql", DatabaseEngine.SQLSERVER, 1433),
        ],
    )
    def test_driver_aliases_and_default_ports(self, name: str, engine: DatabaseEngine, port: int) -> None:
        """Engine aliases resolve and default ports are filled in."""
        config = ConnectionConfig(driver=name, host="db")
        assert config.driver is engine
        assert config.port == port

    def test_explicit_port_kept(self) -> None:
        """An explicit port is not overwritten."""
        assert ConnectionConfig(driver="mysql", host="db", port=3307).port == 3307

    def test_schema_alias(self) -> None:
        """The schema key populates search_path."""
        config = ConnectionConfig(driver="postgresql", host="db", schema="reporting")
        assert config.search_path == "reporting"

    def test_unknown_driver(self) -> None:
        """Unknown engines fail validation."""
        with pytest.raises(ValidationError):
            ConnectionConfig(driver="oracle", host="db")


class TestQueryCraftConfig:
    def test_default_connection_must_exist(self) -> None:
        """default_connection must name a configured connection."""
        with pytest.raises(ValidationError, match="not found in connections"):
            QueryCraftConfig(
                connections={"main": {"driver": "sqlite", "database": ":memory:"}},
                default_connection="other",
            )

    def test_empty(self) -> None:
        """An empty config has no connections."""
        config = QueryCraftConfig()
        assert config.connections == {}
        assert config.default_connection is None


# ============================================================================
# ConfigLoader
# ============================================================================


CONFIG_YAML = """
version: "1.0"
connections:
  main:
    driver: sqlite
    database: ":memory:"
    prefix: "cb_"
  reports:
    driver: sqlite
    database: ":memory:"
default_connection: reports
"""


class TestConfigLoader:
    """Locating and parsing connections.yml."""

    def test_explicit_path(self, tmp_path: Path) -> None:
        """An explicit path is loaded and validated."""
        path = tmp_path / "connections.yml"
        path.write_text(CONFIG_YAML)

        config = ConfigLoader(path).load_config()

        assert set(config.connections) == {"main", "reports"}
        assert config.connections["main"].prefix == "cb_"
        assert config.default_connection == "reports"

    def test_environment_variable(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """QUERYCRAFT_CONFIG points to the config file."""
        path = tmp_path / "env.yml"
        path.write_text(CONFIG_YAML)
        monkeypatch.setenv("QUERYCRAFT_CONFIG", str(path))

        assert ConfigLoader().get_config_path() == path

    def test_missing_file_gives_empty_config(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """No config file means an empty configuration."""
        monkeypatch.delenv("QUERYCRAFT_CONFIG", raising=False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)

        config = ConfigLoader().load_config()

        assert config.connections == {}

    def test_missing_explicit_path(self, tmp_path: Path) -> None:
        """A missing explicit path resolves to None."""
        assert ConfigLoader(tmp_path / "nope.yml").get_config_path() is None

    def test_result_is_cached(self, tmp_path: Path) -> None:
        """load_config() parses the file once."""
        path = tmp_path / "connections.yml"
        path.write_text(CONFIG_YAML)
        loader = ConfigLoader(path)

        assert loader.load_config() is loader.load_config()

    @pytest.mark.parametrize(
        "content",
        ["- just\n- a list\n", "connections: [unclosed\n", "connections:\n  main:\n    driver: sqlite\n"],
    )
    def test_invalid_files(self, tmp_path: Path, content: str) -> None:
        """Malformed or invalid files raise ValueError."""
        path = tmp_path / "broken.yml"
        path.write_text(content)

        with pytest.raises(ValueError, match="Failed to load connection config"):
            ConfigLoader(path).load_config()


# ============================================================================
# Connection and registry
# ============================================================================


class TestConnection:
    def test_session_settings(self) -> None:
        """Charset and search_path are applied on connect."""
        driver = FakeDriver(DatabaseEngine.POSTGRESQL)
        config = ConnectionConfig(driver="postgresql", host="db", charset="utf8", schema="app")

        Connection(driver, config)

        assert driver.statements == ["SET NAMES 'utf8'", "SET search_path TO 'app'"]

    def test_sqlite_ignores_charset(self) -> None:
        """SQLite gets no session statements."""
        driver = FakeDriver(DatabaseEngine.SQLITE)
        Connection(driver, ConnectionConfig(driver="sqlite", database=":memory:", charset="utf8"))
        assert driver.statements == []

    def test_session_setting_failure(self) -> None:
        """A failing session statement is mapped and carries its SQL."""
        driver = FakeDriver(DatabaseEngine.MYSQL)
        driver.fail_with = DriverError("HY000", 2013, "Lost connection")

        with pytest.raises(SqlConnectionError) as exc_info:
            Connection(driver, ConnectionConfig(driver="mysql", host="db", charset="utf8mb4"))

        assert exc_info.value.query.sql == "SET NAMES 'utf8mb4'"

    def test_unconfigured_connection(self) -> None:
        """A connection without config has no prefix or overwriting."""
        connection = Connection(FakeDriver())
        assert connection.prefix is None
        assert connection.query_overwriting is False
        assert connection.engine is DatabaseEngine.MYSQL

    def test_close(self) -> None:
        """close() closes the driver."""
        driver = FakeDriver()
        Connection(driver).close()
        assert driver.closed


class TestConnectionRegistry:
    """Named connections and the default."""

    def test_first_connection_is_default(self) -> None:
        """The first connection added becomes the default."""
        registry = ConnectionRegistry()
        first = registry.add("first", Connection(FakeDriver()))
        registry.add("second", Connection(FakeDriver()))

        assert registry.default is first
        assert registry.default_name == "first"
        assert registry.get() is first

    def test_explicit_default(self) -> None:
        """The default can be chosen on add or later."""
        registry = ConnectionRegistry()
        registry.add("first", Connection(FakeDriver()))
        second = registry.add("second", Connection(FakeDriver()), default=True)

        assert registry.get() is second
        registry.set_default("first")
        assert registry.default_name == "first"

    def test_unknown_names(self) -> None:
        """Unknown names raise SqlConnectionError with code 404."""
        registry = ConnectionRegistry()
        with pytest.raises(SqlConnectionError) as exc_info:
            registry.get()
        assert exc_info.value.code == 404

        with pytest.raises(SqlConnectionError):
            registry.set_default("ghost")

    def test_remove_default_promotes_next(self) -> None:
        """Removing the default promotes the earliest remaining one."""
        registry = ConnectionRegistry()
        registry.add("a", Connection(FakeDriver()))
        b = registry.add("b", Connection(FakeDriver()))
        registry.add("c", Connection(FakeDriver()))

        registry.remove("a")

        assert registry.default is b
        assert registry.names() == ["b", "c"]
        assert "a" not in registry
        assert len(registry) == 2

    def test_remove_last(self) -> None:
        """Removing the only connection leaves no default."""
        registry = ConnectionRegistry()
        registry.add("only", Connection(FakeDriver()))
        registry.remove("only")
        assert registry.default is None

    def test_builder_uses_registry_default(self) -> None:
        """Builders fall back to the registry default."""
        registry = ConnectionRegistry()
        connection = registry.add("main", Connection(FakeDriver(), make_config(DatabaseEngine.MYSQL, "x_")))

        builder = QueryBuilder(registry=registry)

        assert builder.connection is connection
        assert builder.table("t").get_query().sql == "SELECT * FROM `x_t`"

    def test_empty_registry_has_no_builder(self) -> None:
        """An empty registry cannot provide a connection."""
        with pytest.raises(SqlConnectionError):
            QueryBuilder(registry=ConnectionRegistry())


class TestBuildRegistry:
    def test_sqlite_connections_open_natively(self) -> None:
        """SQLite connections open without a factory."""
        config = QueryCraftConfig(
            connections={
                "main": {"driver": "sqlite", "database": ":memory:"},
                "other": {"driver": "sqlite", "database": ":memory:"},
            },
            default_connection="other",
        )

        registry = build_registry(config)

        assert registry.names() == ["main", "other"]
        assert registry.default_name == "other"
        assert isinstance(registry.get("main").driver, SqliteDriver)

    def test_driver_factory(self) -> None:
        """Every connection is opened through the factory."""
        config = QueryCraftConfig(connections={"main": {"driver": "mysql", "host": "db", "prefix": "cb_"}})
        opened: list[str] = []

        def factory(name: str, conn_config: ConnectionConfig) -> FakeDriver:
            opened.append(name)
            return FakeDriver(conn_config.driver)

        registry = build_registry(config, factory)

        assert opened == ["main"]
        assert registry.get().prefix == "cb_"

    def test_server_engine_needs_factory(self) -> None:
        """Server engines without a factory are rejected."""
        config = QueryCraftConfig(connections={"main": {"driver": "mysql", "host": "db"}})
        with pytest.raises(ValueError, match="driver_factory"):
            build_registry(config)
