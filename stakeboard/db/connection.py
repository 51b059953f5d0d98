"""SQLite connection management with WAL mode and schema initialization."""
from __future__ import annotations

import sqlite3
from pathlib import Path

SCHEMA_PATH = Path(__file__).parent / "schema.sql"


def apply_schema(conn: sqlite3.Connection) -> None:
    with open(SCHEMA_PATH) as f:
        conn.executescript(f.read())
    conn.commit()


def get_connection(db_path: Path) -> sqlite3.Connection:
    """Create and initialize a SQLite connection.

    Args:
        db_path: Path to the database file.

    Returns:
        Initialized connection with WAL mode and schema applied.

    Raises:
        sqlite3.Error: if the file is not a usable database. The connection
            is closed before the error propagates.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute("PRAGMA journal_mode=WAL")
        apply_schema(conn)
    except sqlite3.Error:
        conn.close()
        raise
    return conn
