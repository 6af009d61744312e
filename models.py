"""
models.py
Lightweight domain types (roles, dataclasses, query result).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

ROLE_ADMIN = "admin"
ROLE_CORE_DEVOTEE = "core_devotee"
ROLES = (ROLE_ADMIN, ROLE_CORE_DEVOTEE)


@dataclass(frozen=True)
class Session:
    user_id: str
    email: str


@dataclass(frozen=True)
class Identity:
    user_id: str
    role: str | None  # None when the profile row could not be loaded
    display_name: str | None = None
    centre_name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def has_profile(self) -> bool:
        return self.role is not None


@dataclass(frozen=True)
class Centre:
    id: int
    name: str


@dataclass(frozen=True)
class CalendarEntry:
    id: int
    name: str
    date: str  # ISO YYYY-MM-DD

    @property
    def label(self) -> str:
        return f"{self.name} ({self.date})"


@dataclass(frozen=True)
class Contact:
    id: int | None
    owner_devotee_id: str
    name: str
    phone: str
    address: str | None
    enrolment_date: str | None
    owner_name: str | None = None  # joined from core_devotee_profiles


@dataclass(frozen=True)
class Donation:
    id: int | None
    contact_id: int
    calendar_entry_id: int | None
    amount: Any  # coerced to Decimal by reports.to_amount
    transaction_id: str | None = None
    transaction_date: str | None = None
    receipt_number: str | None = None
    transferred: bool = False
    # joined display columns
    contact_name: str | None = None
    devotee_name: str | None = None
    centre_name: str | None = None
    calendar_entry_name: str | None = None
    calendar_entry_date: str | None = None


@dataclass(frozen=True)
class ContactFilters:
    devotee_id: str | None = None  # admin only


@dataclass(frozen=True)
class DonationFilters:
    contact_id: int | None = None
    calendar_entry_id: int | None = None
    date_from: str | None = None
    date_to: str | None = None
    devotee_id: str | None = None  # admin only
    centre_id: int | None = None  # admin only


@dataclass(frozen=True)
class Constraint:
    column: str
    op: str  # one of "=", ">=", "<="
    value: Any


@dataclass(frozen=True)
class QueryResult:
    ok: bool
    rows: list = field(default_factory=list)
    error: str | None = None

    @classmethod
    def success(cls, rows) -> "QueryResult":
        return cls(ok=True, rows=list(rows))

    @classmethod
    def failure(cls, message: str) -> "QueryResult":
        return cls(ok=False, rows=[], error=message)

    @property
    def is_empty(self) -> bool:
        return self.ok and not self.rows
