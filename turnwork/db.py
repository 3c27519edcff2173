import sqlite3
from datetime import datetime, timezone

from .config import DB_PATH

TABLES = ("shift_types", "shift_cycles", "alarms", "events")

_SCHEMA_READY: set[str] = set()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def _utcnow_iso() -> str:
    return _utcnow().isoformat()


def _ensure_schema(conn: sqlite3.Connection, db_path: str) -> None:
    if db_path in _SCHEMA_READY:
        return
    for table in TABLES:
        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id TEXT PRIMARY KEY,
                data TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
    conn.commit()
    if db_path != ":memory:":
        _SCHEMA_READY.add(db_path)


def _get_connection(db_path: str = DB_PATH) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    _ensure_schema(conn, db_path)
    return conn
