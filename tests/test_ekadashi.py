from __future__ import annotations

import itertools

import ekadashi
from conftest import entries
from models import ROLE_ADMIN, ROLE_CORE_DEVOTEE

TODAY = "2024-03-10"
CALENDAR = entries(
    "2024-04-03", "2024-03-01", "2024-02-10", "2024-03-20", "2024-02-24", "2024-02-17",
)


def dates(window):
    return [e.date for e in window]


def test_core_devotee_window_three_past_one_future():
    window = ekadashi.visible_window(CALENDAR, ROLE_CORE_DEVOTEE, TODAY)
    assert dates(window) == ["2024-02-17", "2024-02-24", "2024-03-01", "2024-03-20"]


def test_dashboard_default_is_latest_past():
    window, default = ekadashi.select_for_dashboard(CALENDAR, ROLE_CORE_DEVOTEE, TODAY)
    assert len(window) == 4
    assert default.date == "2024-03-01"


def test_admin_sees_everything_in_date_order():
    window = ekadashi.visible_window(CALENDAR, ROLE_ADMIN, TODAY)
    assert dates(window) == sorted(e.date for e in CALENDAR)


def test_missing_profile_gets_restricted_window():
    assert dates(ekadashi.visible_window(CALENDAR, None, TODAY)) == dates(
        ekadashi.visible_window(CALENDAR, ROLE_CORE_DEVOTEE, TODAY)
    )


def test_window_is_ascending_and_bounded_for_any_split():
    all_dates = ["2024-01-01", "2024-02-01", "2024-03-01", "2024-03-10",
                 "2024-04-01", "2024-05-01", "2024-06-01"]
    for size in range(len(all_dates) + 1):
        for combo in itertools.combinations(all_dates, size):
            for role in (ROLE_ADMIN, ROLE_CORE_DEVOTEE):
                window = ekadashi.visible_window(entries(*combo), role, TODAY)
                assert dates(window) == sorted(dates(window))
            window = ekadashi.visible_window(entries(*combo), ROLE_CORE_DEVOTEE, TODAY)
            assert len(window) <= 4
            assert len([d for d in dates(window) if d < TODAY]) <= 3
            assert len([d for d in dates(window) if d >= TODAY]) <= 1


def test_entry_on_today_is_the_future_slot_and_the_default():
    calendar = entries("2024-03-10", "2024-03-25", "2024-02-24")
    window, default = ekadashi.select_for_dashboard(calendar, ROLE_CORE_DEVOTEE, TODAY)
    assert dates(window) == ["2024-02-24", "2024-03-10"]
    assert default.date == "2024-03-10"


def test_default_falls_back_to_earliest_future():
    calendar = entries("2024-05-01", "2024-04-01")
    _, default = ekadashi.select_for_dashboard(calendar, ROLE_ADMIN, TODAY)
    assert default.date == "2024-04-01"


def test_empty_calendar_has_no_default():
    window, default = ekadashi.select_for_dashboard([], ROLE_CORE_DEVOTEE, TODAY)
    assert window == []
    assert default is None


def test_form_context_never_preselects():
    window, default = ekadashi.select_for_form(CALENDAR, ROLE_CORE_DEVOTEE, TODAY)
    assert len(window) == 4
    assert default is None
