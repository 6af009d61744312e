"""
data.py
Reads and writes used by the pages.

Reads return a QueryResult so a page can tell "no rows" apart from
"the fetch failed". Writes raise ValidationError before touching the
database, or WriteError when the database rejects the insert.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime, timedelta
from decimal import Decimal

import auth
import db
import ekadashi
import queries
import utils
from models import (
    CalendarEntry,
    Centre,
    Contact,
    ContactFilters,
    Donation,
    DonationFilters,
    Identity,
    QueryResult,
)

logger = logging.getLogger(__name__)


class DataError(Exception):
    pass


class ValidationError(DataError):
    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class WriteError(DataError):
    pass


def _read(sql: str, params: tuple, convert) -> QueryResult:
    try:
        rows = db.fetch_all(sql, params)
    except sqlite3.Error as exc:
        logger.error("Query failed: %s", exc)
        return QueryResult.failure(str(exc))
    return QueryResult.success(convert(r) for r in rows)


# ---------- Reference data ----------

def _calendar_entry(r) -> CalendarEntry:
    return CalendarEntry(id=r["id"], name=r["ekadashi_name"], date=r["ekadashi_date"])


def fetch_calendar() -> QueryResult:
    return _read(
        "SELECT id, ekadashi_name, ekadashi_date FROM ekadashi_calendar ORDER BY ekadashi_date ASC, id ASC",
        (),
        _calendar_entry,
    )


def fetch_devotees() -> QueryResult:
    return _read(
        "SELECT user_id, name FROM core_devotee_profiles WHERE role = 'core_devotee' ORDER BY name",
        (),
        dict,
    )


def fetch_centres() -> QueryResult:
    return _read(
        "SELECT id, centre_name FROM centres ORDER BY centre_name",
        (),
        lambda r: Centre(id=r["id"], name=r["centre_name"]),
    )


# ---------- Contacts ----------

def _contact(r) -> Contact:
    return Contact(
        id=r["id"],
        owner_devotee_id=r["core_devotee_id"],
        name=r["contact_name"],
        phone=r["contact_number"],
        address=r["address"],
        enrolment_date=r["enrolment_date"],
        owner_name=r["owner_name"],
    )


def fetch_contacts(identity: Identity, filters: ContactFilters | None = None) -> QueryResult:
    where, params = queries.to_where(queries.build_contact_query(identity, filters))
    sql = f"""
        SELECT c.id, c.core_devotee_id, c.contact_name, c.contact_number, c.address,
               c.enrolment_date, p.name AS owner_name
        FROM contacts c
        LEFT JOIN core_devotee_profiles p ON p.user_id = c.core_devotee_id
        {where}
        ORDER BY c.contact_name ASC, c.id ASC
    """
    return _read(sql, params, _contact)


def add_contact(identity: Identity, name: str, phone: str, address: str = "",
                enrolment_date: str | None = None) -> int:
    """Contacts are always owned by the devotee who creates them."""
    if identity.is_admin:
        raise ValidationError(["Admins cannot create contacts."])
    errors = utils.validate_contact_inputs(name, phone, enrolment_date)
    if errors:
        raise ValidationError(errors)

    try:
        contact_id = db.execute(
            """
            INSERT INTO contacts(core_devotee_id, contact_name, contact_number, address, enrolment_date)
            VALUES(?,?,?,?,?)
            """,
            (identity.user_id, name.strip(), phone.strip(), address.strip() or None,
             enrolment_date or utils.today_iso()),
        )
    except sqlite3.Error as exc:
        logger.error("Contact insert failed: %s", exc)
        raise WriteError(str(exc)) from exc
    logger.info("Contact %s added by %s", contact_id, identity.user_id)
    return contact_id


# ---------- Donations ----------

DONATION_SELECT = """
    SELECT d.id, d.contact_id, d.ekadashi_id, d.amount, d.transaction_id, d.transaction_date,
           d.receipt_number, d.transferred,
           c.contact_name, p.name AS devotee_name, ce.centre_name,
           e.ekadashi_name, e.ekadashi_date
    FROM donations d
    JOIN contacts c ON c.id = d.contact_id
    JOIN core_devotee_profiles p ON p.user_id = c.core_devotee_id
    LEFT JOIN centres ce ON ce.id = p.centre_id
    LEFT JOIN ekadashi_calendar e ON e.id = d.ekadashi_id
"""


def _donation(r) -> Donation:
    return Donation(
        id=r["id"],
        contact_id=r["contact_id"],
        calendar_entry_id=r["ekadashi_id"],
        amount=r["amount"],
        transaction_id=r["transaction_id"],
        transaction_date=r["transaction_date"],
        receipt_number=r["receipt_number"],
        transferred=bool(r["transferred"]),
        contact_name=r["contact_name"],
        devotee_name=r["devotee_name"],
        centre_name=r["centre_name"],
        calendar_entry_name=r["ekadashi_name"],
        calendar_entry_date=r["ekadashi_date"],
    )


def fetch_donations(identity: Identity, filters: DonationFilters | None = None) -> QueryResult:
    """
    Donation history rows, newest transaction first.
    Rows whose contact or owning devotee profile does not resolve are excluded.
    """
    where, params = queries.to_where(queries.build_donation_query(identity, filters))
    sql = f"{DONATION_SELECT}{where} ORDER BY d.transaction_date DESC, d.id DESC"
    return _read(sql, params, _donation)


def fetch_amounts(identity: Identity, calendar_entry_id: int | None = None) -> QueryResult:
    """
    Bare amount rows for the dashboard totals. Only the contact is joined
    (for owner scoping), so the totals do not depend on profile rows.
    """
    filters = DonationFilters(calendar_entry_id=calendar_entry_id)
    where, params = queries.to_where(queries.build_donation_query(identity, filters))
    sql = f"""
        SELECT d.id, d.contact_id, d.ekadashi_id, d.amount
        FROM donations d
        JOIN contacts c ON c.id = d.contact_id
        {where}
    """
    return _read(
        sql,
        params,
        lambda r: Donation(id=r["id"], contact_id=r["contact_id"],
                           calendar_entry_id=r["ekadashi_id"], amount=r["amount"]),
    )


def save_donation(identity: Identity, contact_id, ekadashi_id, amount, transaction_id: str = "",
                  transaction_date: str | None = None, receipt_number: str = "",
                  transferred: bool = False, today: str | None = None) -> int:
    """
    Insert one donation. Nothing is written unless every check passes:
    required fields, positive amount, confirmed transfer, a contact the user
    can see and an Ekadashi inside the user's current window.
    """
    errors = utils.validate_donation_inputs(contact_id, ekadashi_id, amount, transferred, transaction_date)
    if errors:
        raise ValidationError(errors)
    try:
        contact_id, ekadashi_id = int(contact_id), int(ekadashi_id)
    except (TypeError, ValueError):
        raise ValidationError(["Selected contact or Ekadashi is not valid."]) from None

    contacts = fetch_contacts(identity)
    if not contacts.ok:
        raise WriteError(contacts.error)
    if contact_id not in {c.id for c in contacts.rows}:
        raise ValidationError(["Selected contact is not available."])

    calendar = fetch_calendar()
    if not calendar.ok:
        raise WriteError(calendar.error)
    window = ekadashi.visible_window(calendar.rows, identity.role, today or utils.today_iso())
    if ekadashi_id not in {e.id for e in window}:
        raise ValidationError(["Selected Ekadashi is not available."])

    try:
        donation_id = db.execute(
            """
            INSERT INTO donations(contact_id, ekadashi_id, amount, transaction_id, transaction_date,
                                  receipt_number, transferred, created_at)
            VALUES(?,?,?,?,?,?,?,?)
            """,
            (
                contact_id,
                ekadashi_id,
                str(Decimal(str(amount).strip())),
                (transaction_id or "").strip() or None,
                transaction_date or None,
                (receipt_number or "").strip() or None,
                1,
                datetime.now().isoformat(timespec="seconds"),
            ),
        )
    except sqlite3.Error as exc:
        logger.error("Donation insert failed: %s", exc)
        raise WriteError(str(exc)) from exc
    logger.info("Donation %s saved by %s", donation_id, identity.user_id)
    return donation_id


# ---------- Seeding ----------

def seed_calendar(entries: list[tuple[str, str]]) -> int:
    """Insert (name, ISO date) rows into the Ekadashi calendar."""
    bad = [d for _, d in entries if not utils.is_iso_date(d)]
    if bad:
        raise ValidationError([f"Invalid Ekadashi date: {d}" for d in bad])
    db.executemany(
        "INSERT INTO ekadashi_calendar(ekadashi_name, ekadashi_date) VALUES(?,?)",
        list(entries),
    )
    return len(entries)


SAMPLE_EKADASHIS = [
    "Papmochani Ekadashi",
    "Kamada Ekadashi",
    "Varuthini Ekadashi",
    "Mohini Ekadashi",
    "Apara Ekadashi",
    "Nirjala Ekadashi",
    "Yogini Ekadashi",
]


def insert_sample_data() -> None:
    """
    Insert a centre, one core devotee (devotee@example.org / devotee123),
    a few contacts, a calendar around today and some donations.
    Adds new rows each time it runs.
    """
    today = date.today()
    now = datetime.now().isoformat(timespec="seconds")

    # Ekadashis fall roughly every 15 days; 5 past, 2 upcoming
    offsets = [-75, -60, -45, -30, -15, 0, 15]
    seed_calendar([(name, (today + timedelta(days=o)).isoformat()) for name, o in zip(SAMPLE_EKADASHIS, offsets)])
    calendar = db.fetch_all(
        "SELECT id FROM ekadashi_calendar ORDER BY id DESC LIMIT ?", (len(offsets),)
    )
    entry_ids = [r["id"] for r in reversed(calendar)]

    db.execute(
        "INSERT INTO centres(centre_name) VALUES(?) ON CONFLICT(centre_name) DO NOTHING",
        ("Sample Centre",),
    )
    centre_id = db.fetch_one("SELECT id FROM centres WHERE centre_name = ?", ("Sample Centre",))["id"]

    devotee = auth.get_user_by_email("devotee@example.org")
    if devotee:
        user_id = devotee["id"]
    else:
        user_id = db.new_user_id()
        db.execute(
            "INSERT INTO auth_users(id, email, password_hash, created_at) VALUES(?,?,?,?)",
            (user_id, "devotee@example.org", auth.hash_password("devotee123"), now),
        )
        db.execute(
            "INSERT INTO core_devotee_profiles(user_id, name, role, centre_id) VALUES(?,?,?,?)",
            (user_id, "Sample Devotee", "core_devotee", centre_id),
        )

    contacts = [
        ("Ramesh Kumar", "9800000001", "12 Temple Road"),
        ("Sita Devi", "9800000002", "4 Gopal Nagar"),
        ("Arjun Das", "9800000003", None),
    ]
    contact_ids = []
    for name, phone, address in contacts:
        contact_ids.append(db.execute(
            """
            INSERT INTO contacts(core_devotee_id, contact_name, contact_number, address, enrolment_date)
            VALUES(?,?,?,?,?)
            """,
            (user_id, name, phone, address, today.isoformat()),
        ))

    donations = [
        (contact_ids[0], entry_ids[3], "501", "UPI-1001", (today - timedelta(days=30)).isoformat(), "R-1", 1, now),
        (contact_ids[1], entry_ids[3], "251", "UPI-1002", (today - timedelta(days=29)).isoformat(), "R-2", 1, now),
        (contact_ids[0], entry_ids[4], "1001", "UPI-1003", (today - timedelta(days=15)).isoformat(), "R-3", 1, now),
        (contact_ids[2], entry_ids[5], "108", None, today.isoformat(), None, 1, now),
    ]
    db.executemany(
        """
        INSERT INTO donations(contact_id, ekadashi_id, amount, transaction_id, transaction_date,
                              receipt_number, transferred, created_at)
        VALUES(?,?,?,?,?,?,?,?)
        """,
        donations,
    )
    logger.info("Inserted sample data")
