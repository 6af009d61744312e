from __future__ import annotations

import pytest

import auth
import db
from models import ROLE_ADMIN, ROLE_CORE_DEVOTEE, CalendarEntry, Identity

ADMIN_PASSWORD = "admin123"


@pytest.fixture(scope="session")
def admin_hash():
    return auth.hash_password(ADMIN_PASSWORD)


@pytest.fixture
def temp_db(tmp_path, monkeypatch, admin_hash):
    monkeypatch.setattr(db, "DB_FILE", tmp_path / "test.db")
    db.init_db(admin_hash, "admin@example.org")
    return tmp_path / "test.db"


def add_devotee(email: str, name: str, password: str = "secret1", centre: str | None = None) -> str:
    centre_id = None
    if centre:
        db.execute("INSERT OR IGNORE INTO centres(centre_name) VALUES(?)", (centre,))
        centre_id = db.fetch_one("SELECT id FROM centres WHERE centre_name = ?", (centre,))["id"]
    user_id = db.new_user_id()
    db.execute(
        "INSERT INTO auth_users(id, email, password_hash, created_at) VALUES(?,?,?,?)",
        (user_id, email, auth.hash_password(password), "2024-01-01T00:00:00"),
    )
    db.execute(
        "INSERT INTO core_devotee_profiles(user_id, name, role, centre_id) VALUES(?,?,?,?)",
        (user_id, name, ROLE_CORE_DEVOTEE, centre_id),
    )
    return user_id


def add_entry(name: str, day: str) -> int:
    return db.execute(
        "INSERT INTO ekadashi_calendar(ekadashi_name, ekadashi_date) VALUES(?,?)", (name, day)
    )


def add_contact_row(owner: str, name: str) -> int:
    return db.execute(
        "INSERT INTO contacts(core_devotee_id, contact_name, contact_number, enrolment_date) VALUES(?,?,?,?)",
        (owner, name, "9000000000", "2024-01-01"),
    )


def add_donation_row(contact_id: int, entry_id: int, amount, tx_date: str | None = None) -> int:
    return db.execute(
        """
        INSERT INTO donations(contact_id, ekadashi_id, amount, transaction_date, transferred, created_at)
        VALUES(?,?,?,?,1,?)
        """,
        (contact_id, entry_id, amount, tx_date, "2024-01-01T00:00:00"),
    )


@pytest.fixture
def admin():
    return Identity(user_id="admin-user", role=ROLE_ADMIN, display_name="Administrator")


def entries(*dates: str) -> list[CalendarEntry]:
    return [CalendarEntry(id=i, name=f"Ekadashi {i}", date=d) for i, d in enumerate(dates, start=1)]
