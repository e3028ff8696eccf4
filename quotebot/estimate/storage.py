"""SQLite key-value storage for the current estimate and user preferences."""

from __future__ import annotations

import sqlite3
import logging
import os
from pathlib import Path

import config

logger = logging.getLogger(__name__)

_connection: sqlite3.Connection | None = None

DB_FILENAME = "quotebot.db"

ESTIMATE_KEY = "estimate-data"
SEQUENCE_KEY = "invoice-sequence"
TEMPLATE_KEY = "preferred-template"

SCHEMA = """
CREATE TABLE IF NOT EXISTS app_state (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


def db_path() -> Path:
    return Path(os.getenv("DATA_DIR") or config.DATA_DIR) / DB_FILENAME


def get_connection() -> sqlite3.Connection:
    global _connection
    if _connection is None:
        path = db_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        _connection = sqlite3.connect(str(path), check_same_thread=False)
        _connection.row_factory = sqlite3.Row
        _connection.execute("PRAGMA journal_mode=WAL")
        _connection.executescript(SCHEMA)
        _connection.commit()
    return _connection


def close():
    global _connection
    if _connection is not None:
        _connection.close()
        _connection = None


def initialize():
    get_connection()
    logger.info(f"Estimate state database initialized at {db_path()}")


def get_value(key: str) -> str | None:
    row = get_connection().execute("SELECT value FROM app_state WHERE key = ?", (key,)).fetchone()
    return row["value"] if row else None


def set_value(key: str, value: str):
    conn = get_connection()
    conn.execute(
        "INSERT INTO app_state (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP) "
        "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP",
        (key, value),
    )
    conn.commit()


def delete_value(key: str):
    conn = get_connection()
    conn.execute("DELETE FROM app_state WHERE key = ?", (key,))
    conn.commit()
