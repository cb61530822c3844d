"""
core/database.py -- Engine construction and shared persistence helpers.

Every store (auth/store.py, tracker/store.py) owns its own MetaData and
tables but builds its engine here so connection setup is identical:

  SQLite: check_same_thread=False because FastAPI runs sync handlers in a
  thread pool; WAL journal mode for concurrent read safety; foreign_keys=ON
  so the declared REFERENCES clauses are actually enforced.

Any other SQLAlchemy URL is passed through untouched. Connections are pooled
by SQLAlchemy -- stores acquire one per operation with `with engine.connect()`
and release it on exit. There is no application-level locking.

Timestamps are ISO 8601 UTC strings; calendar dates are YYYY-MM-DD strings.
"""

from datetime import date, datetime, timezone

from sqlalchemy import Column, Integer, String, create_engine, event
from sqlalchemy.engine import Engine


def timestamp_columns() -> list[Column]:
    """created_at / updated_at, carried by every table."""
    return [
        Column("created_at", String(32), nullable=False),
        Column("updated_at", String(32), nullable=False),
    ]


def soft_delete_columns() -> list[Column]:
    """deleted_at / deleted_by. A non-null deleted_at marks the row as deleted."""
    return [
        Column("deleted_at", String(32)),
        Column("deleted_by", Integer),
    ]


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL and foreign key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(db_url: str) -> Engine:
    """Create a SQLAlchemy engine for the given URL with SQLite tuning applied."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def today_iso() -> str:
    return date.today().isoformat()
