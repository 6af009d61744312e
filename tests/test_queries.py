from __future__ import annotations

import pytest

import queries
from models import ROLE_CORE_DEVOTEE, Constraint, ContactFilters, DonationFilters, Identity

DEVOTEE = Identity(user_id="dev-1", role=ROLE_CORE_DEVOTEE, display_name="Dev")
NO_PROFILE = Identity(user_id="dev-2", role=None)


def test_admin_contacts_unfiltered_by_default(admin):
    assert queries.build_contact_query(admin) == []


def test_admin_contacts_by_devotee(admin):
    assert queries.build_contact_query(admin, ContactFilters(devotee_id="dev-9")) == [
        Constraint("c.core_devotee_id", "=", "dev-9")
    ]


@pytest.mark.parametrize("identity", [DEVOTEE, NO_PROFILE])
def test_non_admin_contacts_scoped_to_self(identity):
    constraints = queries.build_contact_query(identity, ContactFilters(devotee_id="someone-else"))
    assert constraints == [Constraint("c.core_devotee_id", "=", identity.user_id)]


def test_donation_filters_for_admin(admin):
    filters = DonationFilters(
        contact_id=3, calendar_entry_id=7, date_from="2024-01-01", date_to="2024-01-31",
        devotee_id="dev-1", centre_id=2,
    )
    assert queries.build_donation_query(admin, filters) == [
        Constraint("d.contact_id", "=", 3),
        Constraint("d.ekadashi_id", "=", 7),
        Constraint("d.transaction_date", ">=", "2024-01-01"),
        Constraint("d.transaction_date", "<=", "2024-01-31"),
        Constraint("c.core_devotee_id", "=", "dev-1"),
        Constraint("p.centre_id", "=", 2),
    ]


def test_non_admin_ignores_admin_only_filters():
    filters = DonationFilters(devotee_id="dev-9", centre_id=2)
    assert queries.build_donation_query(DEVOTEE, filters) == [
        Constraint("c.core_devotee_id", "=", "dev-1")
    ]


def test_unset_filters_are_omitted(admin):
    filters = DonationFilters(contact_id=None, calendar_entry_id="", date_from=None)
    assert queries.build_donation_query(admin, filters) == []


def test_adding_a_filter_only_adds_constraints(admin):
    base = queries.build_donation_query(admin, DonationFilters(contact_id=1))
    narrower = queries.build_donation_query(admin, DonationFilters(contact_id=1, calendar_entry_id=4))
    assert set(base) < set(narrower)


def test_build_is_deterministic(admin):
    filters = DonationFilters(contact_id=1, date_to="2024-02-01")
    assert queries.build_donation_query(admin, filters) == queries.build_donation_query(admin, filters)


def test_to_where():
    sql, params = queries.to_where([
        Constraint("d.contact_id", "=", 1),
        Constraint("d.transaction_date", ">=", "2024-01-01"),
    ])
    assert sql == " WHERE d.contact_id = ? AND d.transaction_date >= ?"
    assert params == (1, "2024-01-01")


def test_to_where_empty():
    assert queries.to_where([]) == ("", ())


def test_to_where_rejects_unknown_columns():
    with pytest.raises(ValueError):
        queries.to_where([Constraint("1=1; DROP TABLE donations; --", "=", 1)])
