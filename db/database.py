import logging
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict

from config import CONFIG_DIR
from utils.errors import ConcurrencyConflict
from .schema import SCHEMA_SQL, INDEXES_SQL, SCHEMA_VERSION

logger = logging.getLogger(__name__)

DB_PATH = CONFIG_DIR / "lingofriends.db"

def init_db():
    """Initialize the database by creating tables and indexes if they don't exist."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    with get_conn() as conn:
        conn.executescript(SCHEMA_SQL)
        conn.executescript(INDEXES_SQL)
        ensure_tree_buffer_days(conn)
        ensure_review_dates(conn)
        ensure_schema_version(conn)
        conn.commit()

def ensure_tree_buffer_days(conn: sqlite3.Connection) -> None:
    """Ensure user_trees has the gift buffer and death columns for existing installs."""
    cursor = conn.cursor()
    cursor.execute("PRAGMA table_info(user_trees)")
    columns = {row[1] for row in cursor.fetchall()}
    if "buffer_days" not in columns:
        cursor.execute("ALTER TABLE user_trees ADD COLUMN buffer_days INTEGER NOT NULL DEFAULT 0")
    if "died_on" not in columns:
        cursor.execute("ALTER TABLE user_trees ADD COLUMN died_on TEXT")

def ensure_review_dates(conn: sqlite3.Connection) -> None:
    """Backfill the day each logged review counted for on existing installs."""
    cursor = conn.cursor()
    cursor.execute("PRAGMA table_info(chunk_reviews)")
    columns = {row[1] for row in cursor.fetchall()}
    if "review_date" not in columns:
        cursor.execute("ALTER TABLE chunk_reviews ADD COLUMN review_date TEXT")
        cursor.execute("UPDATE chunk_reviews SET review_date = date(ts)")

def get_schema_version(conn: sqlite3.Connection) -> int:
    """Read the SQLite schema version from PRAGMA user_version."""
    cursor = conn.cursor()
    cursor.execute("PRAGMA user_version")
    row = cursor.fetchone()
    return int(row[0]) if row else 0

def set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    """Set the SQLite schema version via PRAGMA user_version."""
    conn.execute(f"PRAGMA user_version = {int(version)}")

def ensure_schema_version(conn: sqlite3.Connection) -> None:
    """Ensure the current schema version is written to the database."""
    current = get_schema_version(conn)
    if current != SCHEMA_VERSION:
        set_schema_version(conn, SCHEMA_VERSION)

def update_versioned(
    conn: sqlite3.Connection,
    table: str,
    keys: Dict[str, Any],
    values: Dict[str, Any],
    expected_version: int,
) -> int:
    """Compare-and-swap update of one row; returns the new version.

    Raises ConcurrencyConflict when the row's version is no longer
    ``expected_version`` (or the row is gone).
    """
    assignments = ", ".join(f"{column} = ?" for column in values)
    where = " AND ".join(f"{column} = ?" for column in keys)
    cursor = conn.cursor()
    cursor.execute(
        f"""
        UPDATE {table}
        SET {assignments}, version = version + 1, updated_at = datetime('now')
        WHERE {where} AND version = ?
        """,
        (*values.values(), *keys.values(), expected_version),
    )
    if cursor.rowcount != 1:
        logger.warning("Stale write to %s %s at version %s", table, keys, expected_version)
        raise ConcurrencyConflict(f"{table} {keys} changed since version {expected_version}")
    return expected_version + 1

@contextmanager
def get_conn():
    """Context manager for SQLite connection, using row_factory for dict-like rows."""
    conn = sqlite3.connect(DB_PATH, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()

def get_db():
    """FastAPI dependency that yields a DB connection and closes it afterwards."""
    with get_conn() as conn:
        yield conn
