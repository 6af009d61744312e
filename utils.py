"""
utils.py
Dates, validation, display formatting.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation


def today_iso() -> str:
    return date.today().isoformat()


def parse_iso(d: str) -> date:
    return date.fromisoformat(d)


def is_iso_date(d: str | None) -> bool:
    if not d:
        return False
    try:
        parse_iso(d)
    except ValueError:
        return False
    return True


def format_currency(amount, symbol: str = "₹") -> str:
    """Display-only; amounts are never stored formatted."""
    value = Decimal(str(amount))
    if value == value.to_integral_value():
        return f"{symbol}{value:,.0f}"
    return f"{symbol}{value:,.2f}"


def validate_contact_inputs(name: str, phone: str, enrolment_date: str | None = None) -> list[str]:
    errors: list[str] = []
    if not name.strip() or not phone.strip():
        errors.append("Name and phone are required")
    if enrolment_date and not is_iso_date(enrolment_date):
        errors.append("Enrolment date must be a valid ISO date (YYYY-MM-DD).")
    return errors


def validate_donation_inputs(contact_id, ekadashi_id, amount, transferred: bool,
                             transaction_date: str | None = None) -> list[str]:
    """
    Checked before any insert. Required fields come first so the user fixes
    those before being asked to confirm the transfer.
    """
    if not contact_id or not ekadashi_id or amount in (None, ""):
        return ["Contact, Ekadashi, and Amount are required"]

    errors: list[str] = []
    try:
        value = Decimal(str(amount).strip())
        if not value.is_finite() or value <= 0:
            errors.append("Amount must be a positive number.")
    except InvalidOperation:
        errors.append("Amount must be a positive number.")

    if transaction_date and not is_iso_date(transaction_date):
        errors.append("Transaction date must be a valid ISO date (YYYY-MM-DD).")

    if not transferred:
        errors.append("Please confirm that the donation has been transferred before saving.")
    return errors
