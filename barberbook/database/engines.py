"""Database engine factory shared by the API process and the test suite."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url

logger = logging.getLogger(__name__)

# Execution option a write unit of work sets on its connection so SQLite
# opens the transaction with BEGIN IMMEDIATE.
BEGIN_IMMEDIATE = "sqlite_begin_immediate"


def _is_sqlite(db_url: str) -> bool:
    return db_url.startswith("sqlite")


def _is_file_database(db_url: str) -> bool:
    database = make_url(db_url).database
    return bool(database) and database != ":memory:" and "mode=memory" not in db_url


def _add_pool_events(engine: Engine, pool_name: str) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(_dbapi_connection: Any, _connection_record: Any) -> None:
        logger.info("[%s] Database connection established", pool_name)

    @event.listens_for(engine, "checkout")
    def _on_checkout(
        _dbapi_connection: Any, _connection_record: Any, _connection_proxy: Any
    ) -> None:
        logger.debug("[%s] Connection checked out from pool", pool_name)

    @event.listens_for(engine, "checkin")
    def _on_checkin(_dbapi_connection: Any, _connection_record: Any) -> None:
        logger.debug("[%s] Connection returned to pool", pool_name)


def _configure_sqlite_transactions(engine: Engine, *, use_wal: bool) -> None:
    """
    Take over BEGIN from pysqlite so write units can lock up front.

    pysqlite defers BEGIN until the first DML statement, so two sessions can
    both read an empty booking set before either inserts. Connections that
    carry the ``BEGIN_IMMEDIATE`` execution option start with BEGIN IMMEDIATE,
    which serialises writers for the whole check-then-insert unit. Every other
    transaction starts with a plain deferred BEGIN and takes no write lock, so
    slot queries keep reading while a booking is being written. File databases
    run in WAL mode, where readers and the single writer do not block each
    other.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection: Any, _connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if use_wal:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin(conn: Any) -> None:
        if conn.get_execution_options().get(BEGIN_IMMEDIATE):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def build_engine(
    db_url: str,
    *,
    pool_name: str = "api",
    pool_size: int = 5,
    max_overflow: int = 5,
    pool_timeout: int = 5,
    sqlite_busy_timeout: float = 5.0,
    **overrides: Any,
) -> Engine:
    """Create an engine with the pool and locking behaviour the booking core relies on."""
    kwargs: dict[str, Any] = {"future": True}
    if _is_sqlite(db_url):
        connect_args = dict(overrides.pop("connect_args", {}) or {})
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", sqlite_busy_timeout)
        kwargs["connect_args"] = connect_args
    else:
        kwargs.update(
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_pre_ping=True,
        )
    kwargs.update(overrides)

    engine = create_engine(db_url, **kwargs)
    _add_pool_events(engine, pool_name)
    if _is_sqlite(db_url):
        _configure_sqlite_transactions(engine, use_wal=_is_file_database(db_url))
    return engine
