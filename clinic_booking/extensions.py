"""Application extensions: the SQLite engine, CSRF protection and the write limiter."""

from __future__ import annotations

import os
import sqlite3

from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_wtf import CSRFProtect
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA foreign_keys=ON",
)
DEFAULT_BUSY_TIMEOUT_MS = 5000


def _apply_pragmas(busy_timeout_ms: int):
    def on_connect(dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        for statement in SQLITE_PRAGMAS:
            cursor.execute(statement)
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
        cursor.close()

    return on_connect


class SchedulingDatabase:
    """SQLite engine for the scheduling tables.

    Services work on raw ``sqlite3`` connections checked out of the engine's
    pool, so every connection carries the same PRAGMAs whether it was opened
    by a request, a CLI command or a ``LocalBackend`` worker thread.
    """

    def __init__(self) -> None:
        self._engine: Engine | None = None

    def init_app(self, app: Flask) -> None:
        # Each create_app() rebinds; tests build one app per database file.
        if self._engine is not None:
            self._engine.dispose()
        self._engine = create_engine(
            app.config["SQLALCHEMY_DATABASE_URI"],
            future=True,
            **app.config.get("SQLALCHEMY_ENGINE_OPTIONS", {}),
        )
        busy_timeout = app.config.get("CLINIC_DB_BUSY_TIMEOUT_MS", DEFAULT_BUSY_TIMEOUT_MS)
        event.listen(self._engine, "connect", _apply_pragmas(busy_timeout))
        app.extensions["clinic_db"] = self

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Scheduling database is not initialised; call create_app() first")
        return self._engine

    def raw_connection(self) -> sqlite3.Connection:
        raw = self.engine.raw_connection()
        driver_conn = getattr(raw, "driver_connection", None) or raw.connection  # type: ignore[attr-defined]
        driver_conn.row_factory = sqlite3.Row
        return raw


db = SchedulingDatabase()
csrf = CSRFProtect()
limiter = Limiter(get_remote_address, storage_uri=os.getenv("RATELIMIT_STORAGE_URI", "memory://"))


def init_extensions(app: Flask) -> None:
    db.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)
