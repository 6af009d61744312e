"""
db.py
SQLite helpers + initialization (creates DB/tables, inserts default admin, etc.)
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime

from config import get_settings

logger = logging.getLogger(__name__)

DB_FILE = get_settings().db_path


@contextmanager
def get_conn():
    conn = sqlite3.connect(DB_FILE, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def execute(sql: str, params: tuple = ()) -> int:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.lastrowid


def executemany(sql: str, seq_of_params: list[tuple]) -> None:
    with get_conn() as conn:
        conn.executemany(sql, seq_of_params)


def fetch_one(sql: str, params: tuple = ()):
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchone()


def fetch_all(sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


def new_user_id() -> str:
    return str(uuid.uuid4())


def _create_tables() -> None:
    # Credentials backing the session store
    execute(
        """
        CREATE TABLE IF NOT EXISTS auth_users (
            id TEXT PRIMARY KEY,
            email TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS centres (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            centre_name TEXT NOT NULL UNIQUE
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS core_devotee_profiles (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL UNIQUE,
            name TEXT NOT NULL,
            role TEXT NOT NULL CHECK(role IN ('admin','core_devotee')),
            centre_id INTEGER,
            FOREIGN KEY(user_id) REFERENCES auth_users(id),
            FOREIGN KEY(centre_id) REFERENCES centres(id)
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS contacts (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            core_devotee_id TEXT NOT NULL,
            contact_name TEXT NOT NULL,
            contact_number TEXT NOT NULL,
            address TEXT,
            enrolment_date TEXT
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS ekadashi_calendar (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            ekadashi_name TEXT NOT NULL,
            ekadashi_date TEXT NOT NULL
        )
        """
    )

    # amount is decimal text so it reads back exactly as entered
    execute(
        """
        CREATE TABLE IF NOT EXISTS donations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            contact_id INTEGER NOT NULL,
            ekadashi_id INTEGER NOT NULL,
            amount TEXT NOT NULL CHECK(CAST(amount AS REAL) > 0),
            transaction_id TEXT,
            transaction_date TEXT,
            receipt_number TEXT,
            transferred INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            FOREIGN KEY(contact_id) REFERENCES contacts(id),
            FOREIGN KEY(ekadashi_id) REFERENCES ekadashi_calendar(id)
        )
        """
    )

    # Small settings table (used to force password change on first login)
    execute(
        """
        CREATE TABLE IF NOT EXISTS app_settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
        """
    )


def _get_setting(key: str, default: str | None = None) -> str | None:
    row = fetch_one("SELECT value FROM app_settings WHERE key = ?", (key,))
    if row:
        return str(row["value"])
    return default


def _set_setting(key: str, value: str) -> None:
    execute(
        """
        INSERT INTO app_settings(key, value) VALUES(?, ?)
        ON CONFLICT(key) DO UPDATE SET value=excluded.value
        """,
        (key, value),
    )


def init_db(default_admin_hash: str, admin_email: str = "admin@example.org") -> None:
    """
    Initialize the database.
    - Create tables
    - Insert a default admin login + admin profile if no admin profile exists
    - Force password change on first login
    """
    _create_tables()

    admin = fetch_one("SELECT id FROM core_devotee_profiles WHERE role = 'admin' LIMIT 1")
    if not admin:
        now = datetime.now().isoformat(timespec="seconds")
        user_id = new_user_id()
        execute(
            "INSERT INTO auth_users(id, email, password_hash, created_at) VALUES(?,?,?,?)",
            (user_id, admin_email.lower(), default_admin_hash, now),
        )
        execute(
            "INSERT INTO core_devotee_profiles(user_id, name, role) VALUES(?,?,?)",
            (user_id, "Administrator", "admin"),
        )
        _set_setting("default_admin_user_id", user_id)
        _set_setting("force_password_change", "1")
        logger.info("Created default admin %s", admin_email)
    else:
        # ensure setting exists
        if _get_setting("force_password_change") is None:
            _set_setting("force_password_change", "0")


def is_force_password_change() -> bool:
    return _get_setting("force_password_change") == "1"


def clear_force_password_change() -> None:
    _set_setting("force_password_change", "0")


def default_admin_user_id() -> str | None:
    return _get_setting("default_admin_user_id")


def must_change_password(user_id: str) -> bool:
    """Only the bootstrap admin is held to the forced password change."""
    return is_force_password_change() and user_id == default_admin_user_id()
