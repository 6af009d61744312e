"""
ekadashi.py
Which calendar entries a user may pick, and which one is pre-selected.

Admins see the whole calendar. Core devotees see a moving window: the three
most recent Ekadashis strictly before today plus the nearest one on or after
today. Dates are ISO strings, so plain string comparison orders them.
"""

from __future__ import annotations

from collections.abc import Iterable

from models import ROLE_ADMIN, CalendarEntry

PAST_ENTRIES = 3
FUTURE_ENTRIES = 1


def _chronological(entries: Iterable[CalendarEntry]) -> list[CalendarEntry]:
    return sorted(entries, key=lambda e: (e.date, e.id))


def visible_window(entries: Iterable[CalendarEntry], role: str | None, today: str) -> list[CalendarEntry]:
    """
    Entries selectable by `role`, ascending by date.
    Any role other than admin (including a missing profile) gets the restricted window.
    """
    ordered = _chronological(entries)
    if role == ROLE_ADMIN:
        return ordered

    past = [e for e in ordered if e.date < today][-PAST_ENTRIES:]
    future = [e for e in ordered if e.date >= today][:FUTURE_ENTRIES]
    return past + future


def default_selection(window: list[CalendarEntry], today: str) -> CalendarEntry | None:
    """Latest entry dated on or before today, else the earliest upcoming one, else None."""
    ordered = _chronological(window)
    past_or_today = [e for e in ordered if e.date <= today]
    if past_or_today:
        return past_or_today[-1]
    if ordered:
        return ordered[0]
    return None


def select_for_dashboard(entries, role: str | None, today: str) -> tuple[list[CalendarEntry], CalendarEntry | None]:
    window = visible_window(entries, role, today)
    return window, default_selection(window, today)


def select_for_form(entries, role: str | None, today: str) -> tuple[list[CalendarEntry], None]:
    # list/filter contexts start on the "none selected" placeholder
    return visible_window(entries, role, today), None
