from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, replace
from typing import Iterator, Optional

import mysql.connector


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str

    @classmethod
    def from_dict(cls, db_config: dict) -> "DBConfig":
        return cls(
            host=str(db_config.get("host", "localhost")),
            port=int(db_config.get("port", 3306)),
            user=str(db_config.get("user", "root")),
            password=str(db_config.get("password", "")),
            database=str(db_config.get("database", "enterprise_central")),
        )

    def for_database(self, database: str) -> "DBConfig":
        return replace(self, database=database)


class DatabaseConnection:
    """Connection factory for one database.

    Note: We create short-lived connections per operation (safe for simple Flask apps).
    """

    _instances: dict[DBConfig, "DatabaseConnection"] = {}

    def __init__(self, config: DBConfig):
        self._config = config

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        if config not in cls._instances:
            cls._instances[config] = DatabaseConnection(config)
        return cls._instances[config]

    @property
    def database(self) -> str:
        return self._config.database

    def connect(self):
        return mysql.connector.connect(
            host=self._config.host,
            port=int(self._config.port),
            user=self._config.user,
            password=self._config.password,
            database=self._config.database,
        )


_current_database: ContextVar[Optional[str]] = ContextVar("tenant_database", default=None)


class TenantDatabaseRouter:
    """Connection factory that targets the tenant database bound to the current context.

    Flask binds the database in ``before_request``; jobs and scripts bind it
    explicitly with ``use()``. Connecting with nothing bound is an error so
    tenant data can never land in the central database.
    """

    def __init__(self, base_config: DBConfig):
        self._base = base_config

    @property
    def database(self) -> Optional[str]:
        return _current_database.get()

    def bind(self, database: str):
        return _current_database.set(database)

    def unbind(self, token) -> None:
        _current_database.reset(token)

    @contextmanager
    def use(self, database: str) -> Iterator["TenantDatabaseRouter"]:
        token = self.bind(database)
        try:
            yield self
        finally:
            self.unbind(token)

    def connect(self):
        database = _current_database.get()
        if not database:
            raise RuntimeError("No tenant database bound to the current context")
        return DatabaseConnection.get_instance(self._base.for_database(database)).connect()
