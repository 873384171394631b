"""
Database connection and initialization for Ketchup Tracker.

This module handles:
- Connecting to the SQLite database
- Creating the dose log table if it doesn't exist
"""

import logging
import sqlite3
from pathlib import Path

from . import config


logger = logging.getLogger(__name__)


def get_connection(db_path: Path = None):
    """
    Get a connection to the database.

    Args:
        db_path: Database file to open (defaults to config.DB_PATH)

    Returns a sqlite3 Connection whose rows can be read by column name:
        conn = get_connection()
        rows = conn.execute("SELECT * FROM dose_logs").fetchall()
        rows[0]['cycle_day']
        conn.close()
    """
    if db_path is None:
        db_path = config.DB_PATH
    db_path = Path(db_path)

    # Make sure the data directory exists
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_database(db_path: Path = None):
    """
    Create the tables if they don't exist.

    Safe to run multiple times - existing data is never touched.
    """
    conn = get_connection(db_path)
    cursor = conn.cursor()

    # ============================================================
    # DOSE LOGS TABLE
    # Append-only: one row per confirmed dose, never updated or deleted.
    # timestamp is an ISO-8601 UTC string and may be NULL for
    # records imported without one.
    # ============================================================
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS dose_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            timestamp TEXT,
            cycle_day INTEGER NOT NULL,
            status TEXT NOT NULL DEFAULT 'confirmed'
        )
    """)

    cursor.execute("""
        CREATE INDEX IF NOT EXISTS idx_dose_logs_user
        ON dose_logs (user_id)
    """)

    conn.commit()
    conn.close()

    logger.debug("Database initialized at %s", db_path or config.DB_PATH)


if __name__ == "__main__":
    init_database()
    print(f"Database initialized at: {config.DB_PATH}")
