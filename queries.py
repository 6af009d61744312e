"""
queries.py
Role-scoped constraint sets for the contacts and donations reads.

Builders are pure: they only decide which constraints apply. `to_where`
turns a constraint set into a parameterised WHERE clause for the fixed
join aliases used in data.py:

    c  = contacts
    d  = donations
    p  = core_devotee_profiles (inner-joined on c.core_devotee_id)
"""

from __future__ import annotations

from models import Constraint, ContactFilters, DonationFilters, Identity

CONTACT_OWNER = "c.core_devotee_id"
DONATION_CONTACT = "d.contact_id"
DONATION_ENTRY = "d.ekadashi_id"
DONATION_TX_DATE = "d.transaction_date"
DEVOTEE_CENTRE = "p.centre_id"

ALLOWED_COLUMNS = {CONTACT_OWNER, DONATION_CONTACT, DONATION_ENTRY, DONATION_TX_DATE, DEVOTEE_CENTRE}
ALLOWED_OPS = {"=", ">=", "<="}


def _is_set(value) -> bool:
    return value is not None and value != ""


def build_contact_query(identity: Identity, filters: ContactFilters | None = None) -> list[Constraint]:
    filters = filters or ContactFilters()
    if not identity.is_admin:
        # non-admins only ever read their own contacts
        return [Constraint(CONTACT_OWNER, "=", identity.user_id)]
    if _is_set(filters.devotee_id):
        return [Constraint(CONTACT_OWNER, "=", filters.devotee_id)]
    return []


def build_donation_query(identity: Identity, filters: DonationFilters | None = None) -> list[Constraint]:
    """
    All constraints are ANDed together; unset filters are omitted.
    Devotee and centre filters are honoured for admins only.
    """
    filters = filters or DonationFilters()
    constraints: list[Constraint] = []

    if not identity.is_admin:
        constraints.append(Constraint(CONTACT_OWNER, "=", identity.user_id))

    if _is_set(filters.contact_id):
        constraints.append(Constraint(DONATION_CONTACT, "=", filters.contact_id))
    if _is_set(filters.calendar_entry_id):
        constraints.append(Constraint(DONATION_ENTRY, "=", filters.calendar_entry_id))
    if _is_set(filters.date_from):
        constraints.append(Constraint(DONATION_TX_DATE, ">=", filters.date_from))
    if _is_set(filters.date_to):
        constraints.append(Constraint(DONATION_TX_DATE, "<=", filters.date_to))

    if identity.is_admin:
        if _is_set(filters.devotee_id):
            constraints.append(Constraint(CONTACT_OWNER, "=", filters.devotee_id))
        if _is_set(filters.centre_id):
            constraints.append(Constraint(DEVOTEE_CENTRE, "=", filters.centre_id))

    return constraints


def to_where(constraints: list[Constraint]) -> tuple[str, tuple]:
    if not constraints:
        return "", ()
    clauses = []
    params = []
    for c in constraints:
        if c.column not in ALLOWED_COLUMNS or c.op not in ALLOWED_OPS:
            raise ValueError(f"Unsupported constraint: {c.column} {c.op}")
        clauses.append(f"{c.column} {c.op} ?")
        params.append(c.value)
    return " WHERE " + " AND ".join(clauses), tuple(params)
